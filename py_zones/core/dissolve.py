"""
Dissolve of clipped cells into one polygon per zone.

Unions are accumulated pairwise, left to right, in input order. A union that
fails leaves the accumulator as it was, so a bad cell costs a hole rather
than the whole zone.
"""

from typing import Dict, Iterable, Tuple

import structlog
from shapely.geometry.base import BaseGeometry

from .clipping import ClippedCell
from .geometry import safe_union

logger = structlog.get_logger()


def fold_union(pieces: Iterable[Tuple[str, BaseGeometry]], stage: str) -> Dict[str, BaseGeometry]:
    """
    Left-fold union of geometries sharing a label.

    Args:
        pieces: (label, geometry) pairs in the order they should be merged
        stage: Name used in log events

    Returns:
        One geometry per label, labels in first-seen order
    """
    merged: Dict[str, BaseGeometry] = {}
    for label, geometry in pieces:
        if label not in merged:
            merged[label] = geometry
            continue

        outcome = safe_union(merged[label], geometry)
        if not outcome.ok:
            logger.warning("Union failed, piece dropped", stage=stage, zone=label, error=outcome.error)
        merged[label] = outcome.geometry

    return merged


def dissolve_by_zone(cells: Iterable[ClippedCell]) -> Dict[str, BaseGeometry]:
    """Union the cells of one sub-region group by zone label."""
    return fold_union(((cell.zone, cell.geometry) for cell in cells), stage="sub_region")


def merge_across_sub_regions(pieces: Iterable[Tuple[str, BaseGeometry]]) -> Dict[str, BaseGeometry]:
    """Union per-sub-region zone polygons into the final one-per-zone set."""
    return fold_union(pieces, stage="merge")
