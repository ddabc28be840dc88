"""Voronoi tessellation of labeled points inside a fixed rectangle."""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import QhullError, Voronoi
from shapely.geometry import Polygon, box

from .geometry import KERNEL_ERRORS, polygonal
from .points import MIN_GROUP_POINTS, LabeledPoint

logger = structlog.get_logger()

BBox = Tuple[float, float, float, float]

# Superset of every school location in the Bas-Rhin (min lon, min lat,
# max lon, max lat). Never derived from data.
DEFAULT_BBOX: BBox = (6.5, 47.5, 9.0, 50.0)

GUARD_DISTANCE = 10.0  # guard point offset, in multiples of the extent span


def get_guard_points(points: np.ndarray, bbox: BBox) -> np.ndarray:
    """
    Four far-away points enclosing both the sites and the bbox.

    Every real site lies inside their convex hull, so each real Voronoi
    region is finite. They sit far enough that no location inside the bbox
    is closer to a guard than to a site.
    """
    min_x = min(bbox[0], points[:, 0].min())
    min_y = min(bbox[1], points[:, 1].min())
    max_x = max(bbox[2], points[:, 0].max())
    max_y = max(bbox[3], points[:, 1].max())

    cx = (min_x + max_x) / 2
    cy = (min_y + max_y) / 2
    span = max(max_x - min_x, max_y - min_y, 1.0) * GUARD_DISTANCE

    return np.array([
        [cx - span, cy - span],
        [cx + span, cy - span],
        [cx + span, cy + span],
        [cx - span, cy + span],
    ])


def build_region_polygons(vor: Voronoi, n_sites: int) -> List[Optional[Polygon]]:
    """
    Convert scipy Voronoi regions of the first n_sites points to polygons.

    Regions qhull did not assign (duplicate sites) or left open come back as
    None.
    """
    polygons: List[Optional[Polygon]] = []
    for i in range(n_sites):
        region_idx = vor.point_region[i]
        if region_idx < 0:
            polygons.append(None)
            continue

        region = vor.regions[region_idx]
        if not region or -1 in region or len(region) < 3:
            polygons.append(None)
            continue

        vertices = vor.vertices[region]
        polygon = Polygon(vertices)
        if not polygon.is_valid:
            polygon = polygon.convex_hull
        polygons.append(polygon)

    return polygons


def voronoi_cells(points: Sequence[LabeledPoint], bbox: Optional[BBox] = None) -> List[Optional[Polygon]]:
    """
    Compute the Voronoi cell of each point, restricted to a rectangle.

    Labels play no role here; only positions do.

    Args:
        points: Ordered sites
        bbox: Tessellation extent, DEFAULT_BBOX when omitted

    Returns:
        One polygon (or None when the cell is missing) per point, same order.
        Empty when fewer than 2 points are given.
    """
    if len(points) < MIN_GROUP_POINTS:
        return []

    bbox = bbox or DEFAULT_BBOX
    sites = np.array([p.coords for p in points], dtype=float)
    guards = get_guard_points(sites, bbox)

    try:
        vor = Voronoi(np.vstack([sites, guards]))
    except (QhullError, ValueError) as e:
        logger.warning("Voronoi tessellation failed", sites=len(sites), error=str(e))
        return [None] * len(points)

    logger.debug("Voronoi diagram calculated", sites=len(sites), vertices=len(vor.vertices))

    extent = box(*bbox)
    cells: List[Optional[Polygon]] = []
    seen_regions = set()
    for i, polygon in enumerate(build_region_polygons(vor, len(sites))):
        region_idx = vor.point_region[i]
        # A duplicate site shares its twin's region; only the first keeps it
        if polygon is None or region_idx in seen_regions:
            cells.append(None)
            continue
        seen_regions.add(region_idx)

        try:
            cell = polygonal(polygon.intersection(extent))
        except KERNEL_ERRORS as e:
            logger.warning("Cell could not be bounded", site=i, error=str(e))
            cell = None
        cells.append(cell)

    return cells
