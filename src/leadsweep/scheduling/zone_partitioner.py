"""Deterministic grid partitioning of a search area into zones.

The partitioner is a pure function: the same bounds and grid size always
produce the same zone names and geometry, which makes seeding idempotent.
"""

from dataclasses import dataclass

from ..errors import ConfigurationError

COORDINATE_PRECISION = 8


@dataclass(frozen=True)
class Bounds:
    """Geographic bounding box in decimal degrees."""

    north: float
    south: float
    east: float
    west: float

    def validate(self) -> None:
        """Raise ConfigurationError for a degenerate or out-of-range box."""
        if self.north <= self.south:
            raise ConfigurationError(
                f"Invalid bounds: north ({self.north}) must be greater than south ({self.south})"
            )
        if self.east <= self.west:
            raise ConfigurationError(
                f"Invalid bounds: east ({self.east}) must be greater than west ({self.west})"
            )
        if not (-90.0 <= self.south and self.north <= 90.0):
            raise ConfigurationError("Invalid bounds: latitude must be within [-90, 90]")
        if not (-180.0 <= self.west and self.east <= 180.0):
            raise ConfigurationError("Invalid bounds: longitude must be within [-180, 180]")

    @property
    def area(self) -> float:
        return (self.north - self.south) * (self.east - self.west)

    def contains(self, lat_min: float, lat_max: float, lon_min: float, lon_max: float) -> bool:
        return (
            self.south <= lat_min < lat_max <= self.north
            and self.west <= lon_min < lon_max <= self.east
        )


@dataclass(frozen=True)
class ZoneCell:
    """One cell of a partitioned grid, ready to be seeded into the zone store.

    Attributes:
        name: Stable zone name, ``Grid_{row}_{col}``.
        row: Row index, counted northward from the south edge.
        col: Column index, counted eastward from the west edge.
        lat_min, lat_max, lon_min, lon_max: Cell bounding box.
        center_lat, center_lon: Box midpoint rounded to 8 decimal places.
    """

    name: str
    row: int
    col: int
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float
    center_lat: float
    center_lon: float

    @property
    def area(self) -> float:
        return (self.lat_max - self.lat_min) * (self.lon_max - self.lon_min)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "lat_min": self.lat_min,
            "lat_max": self.lat_max,
            "lon_min": self.lon_min,
            "lon_max": self.lon_max,
            "center_lat": self.center_lat,
            "center_lon": self.center_lon,
        }


def zone_name(row: int, col: int) -> str:
    return f"Grid_{row}_{col}"


def _edges(start: float, end: float, count: int) -> list[float]:
    """Return count + 1 cell edges from start to end.

    Inner edges are rounded; the outer edges are the exact inputs so
    adjacent cells share edges and the grid covers the full box.
    """
    step = (end - start) / count
    edges = [round(start + i * step, COORDINATE_PRECISION) for i in range(count + 1)]
    edges[0] = start
    edges[-1] = end
    return edges


def partition(bounds: Bounds, grid_size: int) -> list[ZoneCell]:
    """Split a bounding box into grid_size x grid_size zones.

    Args:
        bounds: Search area to cover.
        grid_size: Number of rows and of columns.

    Returns:
        Zones in row-major order (Grid_0_0, Grid_0_1, ...).

    Raises:
        ConfigurationError: If grid_size is not positive or the bounds are
            degenerate.

    Example:
        >>> cells = partition(Bounds(30.45, 30.15, -97.65, -97.75), 2)
        >>> cells[0].name, cells[0].center_lat, cells[0].center_lon
        ('Grid_0_0', 30.225, -97.725)
    """
    if isinstance(grid_size, bool) or not isinstance(grid_size, int) or grid_size <= 0:
        raise ConfigurationError(f"Grid size must be a positive integer, got {grid_size!r}")
    bounds.validate()

    lat_edges = _edges(bounds.south, bounds.north, grid_size)
    lon_edges = _edges(bounds.west, bounds.east, grid_size)

    cells = []
    for row in range(grid_size):
        lat_min, lat_max = lat_edges[row], lat_edges[row + 1]
        for col in range(grid_size):
            lon_min, lon_max = lon_edges[col], lon_edges[col + 1]
            cells.append(
                ZoneCell(
                    name=zone_name(row, col),
                    row=row,
                    col=col,
                    lat_min=lat_min,
                    lat_max=lat_max,
                    lon_min=lon_min,
                    lon_max=lon_max,
                    center_lat=round((lat_min + lat_max) / 2, COORDINATE_PRECISION),
                    center_lon=round((lon_min + lon_max) / 2, COORDINATE_PRECISION),
                )
            )
    return cells
