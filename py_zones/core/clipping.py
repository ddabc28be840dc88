"""Clipping of Voronoi cells to boundary masks."""

from dataclasses import dataclass
from typing import AbstractSet, List, Optional, Sequence

import structlog
from shapely.geometry.base import BaseGeometry

from .geometry import safe_intersection
from .points import LabeledPoint
from .styling import zone_color

logger = structlog.get_logger()


@dataclass
class ClippedCell:
    """A Voronoi cell cut to its mask, carrying its site's labels."""

    geometry: BaseGeometry
    zone: str
    sub_region: str
    color: str
    clipped: bool = True  # False when the raw cell was kept


def clip_cells(
    cells: Sequence[Optional[BaseGeometry]],
    points: Sequence[LabeledPoint],
    mask: Optional[BaseGeometry],
    zone_filter: Optional[AbstractSet[str]] = None,
) -> List[ClippedCell]:
    """
    Intersect each cell with the mask.

    Args:
        cells: Voronoi cells, index-aligned with points
        points: Sites that generated the cells
        mask: Cleaned boundary, or None when the group is unmaskable
        zone_filter: Zones to keep; None keeps every zone

    Returns:
        Clipped cells in input order. A failed intersection keeps the uncut
        cell; a cell lying entirely outside the mask is dropped.
    """
    clipped: List[ClippedCell] = []
    fallbacks = 0

    for cell, point in zip(cells, points):
        if cell is None or cell.is_empty:
            continue
        if zone_filter is not None and point.zone not in zone_filter:
            continue

        outcome = safe_intersection(cell, mask)
        if not outcome.ok:
            fallbacks += 1
            if mask is not None:
                logger.warning(
                    "Intersection failed, keeping uncut cell",
                    zone=point.zone,
                    sub_region=point.sub_region,
                    error=outcome.error,
                )
        elif outcome.is_empty:
            continue

        clipped.append(
            ClippedCell(
                geometry=outcome.geometry,
                zone=point.zone,
                sub_region=point.sub_region,
                color=zone_color(point.zone),
                clipped=outcome.ok,
            )
        )

    logger.debug("Cells clipped", kept=len(clipped), uncut=fallbacks)
    return clipped
