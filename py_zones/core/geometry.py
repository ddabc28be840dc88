"""
Safe wrappers around the shapely geometry kernel.

Boolean operations on administrative boundaries regularly fail on invalid
input (self-intersections, slivers). The partition engine never lets such a
failure escape: every operation here returns a GeometryOutcome and the
caller decides which geometry to keep.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

import structlog
from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

logger = structlog.get_logger()

# Errors the kernel raises on malformed geometry
KERNEL_ERRORS = (GEOSException, ValueError, TypeError)


@dataclass(frozen=True)
class GeometryOutcome:
    """Result of a kernel operation.

    ``ok`` is False when the operation raised; ``geometry`` then holds the
    fallback chosen by the operation (the pre-operation geometry).
    """

    geometry: Optional[BaseGeometry]
    ok: bool = True
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.geometry is None or self.geometry.is_empty


def polygon_parts(geometry: Optional[BaseGeometry]) -> List[Polygon]:
    """Flatten a geometry into its non-empty polygons."""
    if geometry is None or geometry.is_empty:
        return []
    if isinstance(geometry, Polygon):
        return [geometry]
    if isinstance(geometry, (MultiPolygon, GeometryCollection)):
        parts = []
        for part in geometry.geoms:
            parts.extend(polygon_parts(part))
        return parts
    return []


def polygonal(geometry: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """
    Keep only the areal part of a geometry.

    Intersections of touching polygons may come back as collections holding
    lines or points next to the polygons.
    """
    parts = polygon_parts(geometry)
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    if isinstance(geometry, MultiPolygon) and len(parts) == len(geometry.geoms):
        return geometry
    return MultiPolygon(parts)


def largest_part(polygons: Iterable[Polygon]) -> Optional[Polygon]:
    """Largest polygon by area, earliest one winning ties."""
    best = None
    for polygon in polygons:
        if best is None or polygon.area > best.area:
            best = polygon
    return best


def repair(geometry: BaseGeometry) -> GeometryOutcome:
    """
    Zero-distance buffer repair.

    Resolves self-intersections and slivers. A multi-part result keeps only
    its largest part; an empty result is reported as an ok outcome with no
    geometry.
    """
    try:
        buffered = geometry.buffer(0)
    except KERNEL_ERRORS as e:
        return GeometryOutcome(geometry, ok=False, error=str(e))

    return GeometryOutcome(largest_part(polygon_parts(buffered)))


def _intersection(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
    return a.intersection(b)


def _union(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
    return a.union(b)


def safe_intersection(cell: BaseGeometry, mask: Optional[BaseGeometry]) -> GeometryOutcome:
    """
    Intersect a cell with a mask.

    Without a mask, or when the kernel fails, the outcome is not ok and
    carries the unclipped cell.
    """
    if mask is None:
        return GeometryOutcome(cell, ok=False, error="no mask")
    try:
        result = _intersection(cell, mask)
    except KERNEL_ERRORS as e:
        return GeometryOutcome(cell, ok=False, error=str(e))
    return GeometryOutcome(polygonal(result))


def safe_union(accumulator: BaseGeometry, geometry: BaseGeometry) -> GeometryOutcome:
    """Union two geometries, keeping the accumulator when the kernel fails."""
    try:
        result = _union(accumulator, geometry)
    except KERNEL_ERRORS as e:
        return GeometryOutcome(accumulator, ok=False, error=str(e))

    merged = polygonal(result)
    if merged is None:
        return GeometryOutcome(accumulator, ok=False, error="union produced no area")
    return GeometryOutcome(merged)
