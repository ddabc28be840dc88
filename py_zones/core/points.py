"""
Facility records and the labeled points derived from them.

A facility only takes part in a partition when it has real coordinates and a
zone label. Qualifying facilities become immutable LabeledPoint instances,
grouped by sub-region for the per-sub-region engine.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()

MIN_TOTAL_POINTS = 3  # below this no partition is computed at all
MIN_GROUP_POINTS = 2  # below this a sub-region group is not tessellated

# Column names of the school export consumed by the editor
DEFAULT_RECORD_KEYS = {
    "id": "UAI",
    "longitude": "Longitude",
    "latitude": "Latitude",
    "zone": "Nom du PAS",
    "sub_region": "Circonscription",
}

_WHITESPACE = re.compile(r"\s")


def clean_number(value: Any) -> float:
    """
    Normalize a spreadsheet number.

    Swaps the first comma for a dot, strips whitespace and reads the leading
    float. Anything that does not parse becomes 0.
    """
    if value is None:
        return 0.0
    text = _WHITESPACE.sub("", str(value).replace(",", ".", 1))
    match = re.match(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", text)
    if not match:
        return 0.0
    return float(match.group(0))


class Facility(BaseModel):
    """A school (or any facility) as handed over by the ingestion layer."""

    id: str = Field(..., description="Facility identifier (UAI)")
    longitude: Optional[float] = Field(default=None, description="WGS84 longitude")
    latitude: Optional[float] = Field(default=None, description="WGS84 latitude")
    zone: str = Field(default="", description="Support-zone label")
    sub_region: str = Field(default="", description="Administrative sub-region label")

    @classmethod
    def from_record(
        cls, record: Mapping[str, Any], keys: Optional[Mapping[str, str]] = None
    ) -> "Facility":
        """Build a facility from a raw row using configurable column names."""
        keys = {**DEFAULT_RECORD_KEYS, **(keys or {})}
        return cls(
            id=str(record.get(keys["id"], "") or ""),
            longitude=clean_number(record.get(keys["longitude"])),
            latitude=clean_number(record.get(keys["latitude"])),
            zone=str(record.get(keys["zone"], "") or "").strip(),
            sub_region=str(record.get(keys["sub_region"], "") or "").strip(),
        )


@dataclass(frozen=True)
class LabeledPoint:
    """A tessellation site: coordinates plus zone and sub-region labels."""

    longitude: float
    latitude: float
    zone: str
    sub_region: str = ""
    facility_id: str = ""

    @property
    def coords(self):
        return (self.longitude, self.latitude)


def _usable_coordinate(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value != 0


def qualifies(facility: Facility) -> bool:
    """Check whether a facility can seed a Voronoi cell."""
    return (
        _usable_coordinate(facility.longitude)
        and _usable_coordinate(facility.latitude)
        and bool(facility.zone and facility.zone.strip())
    )


def prepare_points(facilities: Iterable[Facility]) -> List[LabeledPoint]:
    """
    Turn facilities into labeled points, keeping input order.

    Args:
        facilities: Facility records

    Returns:
        One LabeledPoint per qualifying facility
    """
    points = []
    skipped = 0
    for facility in facilities:
        if not qualifies(facility):
            skipped += 1
            continue
        points.append(
            LabeledPoint(
                longitude=float(facility.longitude),
                latitude=float(facility.latitude),
                zone=facility.zone.strip(),
                sub_region=facility.sub_region or "",
                facility_id=facility.id,
            )
        )

    logger.debug("Points prepared", points=len(points), skipped=skipped)
    return points


def group_by_sub_region(points: Iterable[LabeledPoint]) -> Dict[str, List[LabeledPoint]]:
    """Group points by sub-region label in first-occurrence order."""
    groups: Dict[str, List[LabeledPoint]] = {}
    for point in points:
        groups.setdefault(point.sub_region, []).append(point)
    return groups
