"""Google Maps Places API extractor for business discovery.

This module searches businesses around a named location or inside a zone
using Places Nearby Search with pagination, enriches each result with phone
and website from Place Details, and maps the results to ``RawRecord``.
"""

import asyncio
import functools
import logging
import math
import os
from typing import Any, List, Optional

import googlemaps
from googlemaps.exceptions import ApiError, TransportError, Timeout

from ..errors import ExtractionError
from .base import AreaSpec, LocationArea, RawRecord, ZoneArea

logger = logging.getLogger(__name__)

METERS_PER_DEGREE_LAT = 111_320.0
MAX_RADIUS_METERS = 50_000
MIN_RADIUS_METERS = 100
MAX_PAGES = 3
# A next_page_token is only valid a short while after it is issued.
PAGE_TOKEN_DELAY_SECONDS = 2.0
DETAIL_CONCURRENCY = 5
API_ERRORS = (ApiError, TransportError, Timeout)
DETAIL_FIELDS = ["formatted_phone_number", "international_phone_number", "website"]
IGNORED_PLACE_TYPES = {"point_of_interest", "establishment"}


def zone_radius_meters(area: ZoneArea) -> int:
    """Radius from a zone's centre to its corners (half the box diagonal)."""
    lat_span_m = (area.lat_max - area.lat_min) * METERS_PER_DEGREE_LAT
    lon_span_m = (
        (area.lon_max - area.lon_min)
        * METERS_PER_DEGREE_LAT
        * math.cos(math.radians(area.center_lat))
    )
    radius = math.hypot(lat_span_m, lon_span_m) / 2
    return int(min(max(radius, MIN_RADIUS_METERS), MAX_RADIUS_METERS))


def category_from_types(types: list[str], fallback: str = "") -> str:
    """Pick a readable category from a place's type list."""
    for place_type in types:
        if place_type not in IGNORED_PLACE_TYPES:
            return place_type.replace("_", " ")
    return fallback


class GoogleMapsExtractor:
    """Business extractor backed by Google Maps Places API.

    Attributes:
        api_key: Google Maps API key.
        keyword: Search keyword passed to Nearby Search (may be empty).
        location_radius_km: Radius used for named-location searches.
        max_results: Cap on records returned per area.

    Example:
        >>> extractor = GoogleMapsExtractor(keyword="restaurant")
        >>> records = await extractor.discover(LocationArea("Austin, Texas"))
        >>> for record in records:
        ...     print(record.name, record.has_website)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        keyword: str = "",
        location_radius_km: float = 10.0,
        max_results: int = 100,
        enrich_details: bool = True,
        client: Optional[googlemaps.Client] = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            api_key: Google Maps API key. Defaults to GOOGLE_MAPS_API_KEY env var.
            keyword: Search keyword (business type). Empty searches all types.
            location_radius_km: Radius for named-location searches.
            max_results: Maximum records returned per area.
            enrich_details: Whether to fetch phone/website for each result.
            client: Pre-built googlemaps client, mainly for tests.

        Raises:
            ValueError: If no API key is provided or found in environment.
        """
        self.api_key = api_key or os.environ.get("GOOGLE_MAPS_API_KEY")
        if client is None and not self.api_key:
            raise ValueError(
                "Google Maps API key required. Set GOOGLE_MAPS_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self.keyword = keyword
        self.location_radius_km = location_radius_km
        self.max_results = max_results
        self.enrich_details = enrich_details
        self._client = client or googlemaps.Client(key=self.api_key)
        logger.info(
            "GoogleMapsExtractor initialized (keyword=%r, max_results=%d)",
            keyword,
            max_results,
        )
        if not enrich_details:
            logger.warning(
                "Place details disabled: has_website is unknown and every record "
                "will pass the website filter"
            )

    async def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        """Run a blocking googlemaps client call on the default executor."""
        func = functools.partial(getattr(self._client, method), *args, **kwargs)
        return await asyncio.get_running_loop().run_in_executor(None, func)

    async def geocode(self, location_name: str) -> tuple[float, float]:
        """Convert a location name to latitude/longitude coordinates.

        Raises:
            ExtractionError: If the location cannot be geocoded.
        """
        try:
            results = await self._call("geocode", location_name)
        except API_ERRORS as e:
            raise ExtractionError(
                f"Geocoding failed for {location_name}: {e}", area=location_name
            ) from e
        if not results:
            raise ExtractionError(
                f"Could not geocode location: {location_name}", area=location_name
            )

        point = results[0]["geometry"]["location"]
        logger.debug("Geocoded %s to (%f, %f)", location_name, point["lat"], point["lng"])
        return (point["lat"], point["lng"])

    async def _resolve(self, area: AreaSpec) -> tuple[tuple[float, float], int]:
        if isinstance(area, ZoneArea):
            return (area.center_lat, area.center_lon), zone_radius_meters(area)
        if isinstance(area, LocationArea):
            center = await self.geocode(area.name)
            return center, int(min(self.location_radius_km * 1000, MAX_RADIUS_METERS))
        raise TypeError(f"Unsupported area type: {type(area).__name__}")

    async def _details(self, place_id: str, limit: asyncio.Semaphore) -> dict[str, Any]:
        """Phone and website for one place; empty when the lookup fails."""
        if not place_id:
            return {}
        async with limit:
            try:
                response = await self._call("place", place_id, fields=DETAIL_FIELDS)
            except API_ERRORS as e:
                logger.warning("Place details unavailable for %s: %s", place_id, e)
                return {}
        return response.get("result", {})

    def _to_record(self, place: dict[str, Any], details: dict[str, Any]) -> RawRecord:
        point = place.get("geometry", {}).get("location", {})
        return RawRecord(
            name=place.get("name"),
            address=place.get("vicinity", place.get("formatted_address")),
            category=category_from_types(place.get("types", []), self.keyword),
            phone=details.get("formatted_phone_number") or details.get("international_phone_number"),
            # Places never exposes email addresses.
            email=None,
            has_website=bool(details.get("website") or place.get("website")),
            rating=place.get("rating"),
            review_count=place.get("user_ratings_total", 0),
            latitude=point.get("lat"),
            longitude=point.get("lng"),
        )

    async def _search(
        self, center: tuple[float, float], radius_meters: int, label: str
    ) -> List[dict[str, Any]]:
        """Page through Nearby Search results for one centre and radius.

        A failure on the first page is an ExtractionError; a failure on a
        later page keeps what was already collected.
        """
        places: List[dict[str, Any]] = []
        request: dict[str, Any] = {
            "location": center,
            "radius": radius_meters,
            "keyword": self.keyword or None,
        }

        for page in range(1, MAX_PAGES + 1):
            try:
                response = await self._call("places_nearby", **request)
            except API_ERRORS as e:
                if page == 1:
                    raise ExtractionError(
                        f"Places search failed for {label}: {e}", area=label
                    ) from e
                logger.warning("Stopping at page %d for %s: %s", page, label, e)
                break

            places.extend(response.get("results", []))
            token = response.get("next_page_token")
            logger.debug("Page %d for %s: %d places so far", page, label, len(places))
            if not token or len(places) >= self.max_results:
                break

            await asyncio.sleep(PAGE_TOKEN_DELAY_SECONDS)
            request = {"page_token": token}

        return places[: self.max_results]

    async def discover(self, area: AreaSpec) -> List[RawRecord]:
        """Discover businesses in a named location or a zone.

        Args:
            area: LocationArea or ZoneArea to search.

        Returns:
            Raw records (possibly empty), at most ``max_results``.

        Raises:
            ExtractionError: If geocoding or the first search page fails.
        """
        center, radius_meters = await self._resolve(area)
        logger.info(
            "Searching %s around %s within %d m",
            area.label,
            center,
            radius_meters,
        )

        places = await self._search(center, radius_meters, area.label)
        if not places:
            logger.info("No businesses found in %s", area.label)
            return []

        if self.enrich_details:
            limit = asyncio.Semaphore(DETAIL_CONCURRENCY)
            details = await asyncio.gather(
                *(self._details(place.get("place_id", ""), limit) for place in places)
            )
        else:
            details = [{} for _ in places]

        records = [self._to_record(place, detail) for place, detail in zip(places, details)]
        logger.info("Discovered %d businesses in %s", len(records), area.label)
        return records
