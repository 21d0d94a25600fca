"""Zone, campaign and periodic-task scheduling.

Submodules are imported directly (``from leadsweep.scheduling.zone_scheduler
import ZoneScheduler``); the partitioner is pure and is also imported by the
configuration module.
"""
