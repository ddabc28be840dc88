"""
Boundary masks for clipping Voronoi cells.

Boundary documents are GeoJSON objects converted from KML exports, so they
mix polygons with closed line strings and frequently carry invalid rings.
This module flattens them, picks the relevant shape and repairs it before it
is used as a clipping mask.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import structlog
from shapely.geometry import MultiPoint, MultiPolygon, Polygon, shape
from shapely.geometry.base import BaseGeometry

from .geometry import KERNEL_ERRORS, polygon_parts, repair
from .points import LabeledPoint

logger = structlog.get_logger()

# Properties checked by filter_department, in order
DEPARTMENT_KEYS = ("code_departement", "code_dept", "dep")


def _iter_geometries(geometry: Optional[Mapping[str, Any]]) -> Iterator[Mapping[str, Any]]:
    """Yield single-part GeoJSON geometries (Multi* and collections split)."""
    if not geometry:
        return
    geom_type = geometry.get("type")
    if geom_type == "GeometryCollection":
        for member in geometry.get("geometries") or []:
            yield from _iter_geometries(member)
    elif geom_type in ("MultiPolygon", "MultiLineString", "MultiPoint"):
        single = geom_type[len("Multi"):]
        for coordinates in geometry.get("coordinates") or []:
            yield {"type": single, "coordinates": coordinates}
    else:
        yield geometry


def _iter_features(document: Mapping[str, Any]) -> Iterator[Tuple[Dict[str, Any], Mapping[str, Any]]]:
    doc_type = document.get("type")
    if doc_type == "FeatureCollection":
        for feature in document.get("features") or []:
            yield from _iter_features(feature)
    elif doc_type == "Feature":
        yield dict(document.get("properties") or {}), document.get("geometry")
    elif doc_type:
        yield {}, document


def _line_to_polygon(coordinates: Sequence[Sequence[float]]) -> Optional[Polygon]:
    """Close a line string into a polygon ring."""
    ring = [tuple(c[:2]) for c in coordinates]
    if len(set(ring)) < 3:
        return None
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return Polygon(ring)


def _geometry_polygons(geometry: Optional[Mapping[str, Any]]) -> Iterator[Polygon]:
    """Yield the polygons of one GeoJSON geometry, lines closed into rings."""
    for part in _iter_geometries(geometry):
        geom_type = part.get("type")
        try:
            if geom_type == "Polygon":
                polygon = shape(part)
            elif geom_type == "LineString":
                polygon = _line_to_polygon(part.get("coordinates") or [])
            else:
                continue
        except KERNEL_ERRORS + (KeyError, IndexError) as e:
            logger.debug("Skipping unreadable boundary part", type=geom_type, error=str(e))
            continue
        if polygon is not None and not polygon.is_empty:
            yield polygon


def iter_polygons(document: Optional[Mapping[str, Any]]) -> Iterator[Tuple[Dict[str, Any], Polygon]]:
    """
    Flatten a boundary document into polygons.

    Args:
        document: GeoJSON FeatureCollection, Feature or bare geometry

    Yields:
        (properties, polygon) pairs in document order
    """
    if not document:
        return
    for properties, geometry in _iter_features(document):
        for polygon in _geometry_polygons(geometry):
            yield properties, polygon


def iter_boundaries(document: Optional[Mapping[str, Any]]) -> Iterator[Tuple[Dict[str, Any], BaseGeometry]]:
    """
    Yield one whole shape per feature of a boundary document.

    Multi-part features come back as a single MultiPolygon, unrepaired.
    """
    if not document:
        return
    for properties, geometry in _iter_features(document):
        polygons = list(_geometry_polygons(geometry))
        if not polygons:
            continue
        yield properties, polygons[0] if len(polygons) == 1 else MultiPolygon(polygons)


def largest_polygon_mask(document: Optional[Mapping[str, Any]]) -> Optional[Polygon]:
    """
    Select the largest shape of a boundary document.

    Uses a stable descending sort on planar area, so the first of several
    equally large shapes wins.
    """
    polygons = [polygon for _, polygon in iter_polygons(document)]
    if not polygons:
        return None
    polygons.sort(key=lambda p: p.area, reverse=True)
    return polygons[0]


def clean_mask(geometry: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """
    Repair a boundary before using it as a mask.

    Returns:
        The largest repaired polygon, None when the repair leaves nothing,
        or the input unchanged when the repair itself fails
    """
    if geometry is None:
        return None
    outcome = repair(geometry)
    if not outcome.ok:
        logger.warning("Mask repair failed, using raw boundary", error=outcome.error)
        return geometry
    if outcome.geometry is None:
        logger.warning("Mask repair produced an empty boundary")
    return outcome.geometry


def filter_department(document: Mapping[str, Any], code: str) -> Dict[str, Any]:
    """
    Keep only the boundary features of one department.

    A feature matches on its department code property or on a circonscription
    code prefixed with the zero-padded department code ("067...").
    """
    prefix = str(code).zfill(3)
    kept = []
    for feature in document.get("features") or []:
        properties = feature.get("properties") or {}
        value = ""
        for key in DEPARTMENT_KEYS:
            if properties.get(key):
                value = str(properties[key])
                break
        if value == str(code):
            kept.append(feature)
        elif properties.get("circo_code") and str(properties["circo_code"]).startswith(prefix):
            kept.append(feature)

    logger.info("Department filter applied", department=code, kept=len(kept))
    return {"type": "FeatureCollection", "features": kept}


@dataclass
class MaskResolution:
    """Mask resolved for one sub-region group."""

    sub_region: str
    mask: Optional[BaseGeometry]
    source: str  # "exact", "fuzzy", "hull" or "none"

    @property
    def usable(self) -> bool:
        return self.mask is not None


class SubRegionMasks:
    """Lookup from sub-region label to boundary polygon."""

    def __init__(self, document: Optional[Mapping[str, Any]], name_key: str):
        self.name_key = name_key
        self.boundaries: Dict[str, BaseGeometry] = {}

        # A later feature with the same name replaces the earlier one
        for properties, boundary in iter_boundaries(document):
            name = properties.get(name_key)
            if name is None or str(name) == "":
                continue
            self.boundaries[str(name)] = boundary

        logger.debug("Sub-region boundaries indexed", count=len(self.boundaries), key=name_key)

    def __len__(self) -> int:
        return len(self.boundaries)

    def lookup(self, label: str) -> Tuple[Optional[BaseGeometry], str]:
        """
        Find the boundary of a sub-region.

        Exact match first, then the first boundary (document order) whose
        name is contained in, or contains, the label. The substring rule is
        a loose heuristic ("STRASBOURG 1" also matches "STRASBOURG 10").
        """
        if label in self.boundaries:
            return self.boundaries[label], "exact"
        if label:
            for name, boundary in self.boundaries.items():
                if name in label or label in name:
                    return boundary, "fuzzy"
        return None, "none"

    def resolve(self, label: str, points: List[LabeledPoint]) -> MaskResolution:
        """Resolve and clean the mask of a group, falling back to its hull."""
        boundary, source = self.lookup(label)
        if boundary is not None:
            # A boundary that repairs to nothing leaves the group unmaskable
            return MaskResolution(label, clean_mask(boundary), source)

        hull = self.hull(points)
        if hull is None:
            logger.warning("No boundary for sub-region", sub_region=label, points=len(points))
            return MaskResolution(label, None, "none")

        logger.info("Using convex hull as sub-region boundary", sub_region=label)
        return MaskResolution(label, clean_mask(hull), "hull")

    @staticmethod
    def hull(points: List[LabeledPoint]) -> Optional[BaseGeometry]:
        """Convex hull of the group's points, None when it has no area."""
        try:
            hull = MultiPoint([p.coords for p in points]).convex_hull
        except KERNEL_ERRORS:
            return None
        if not polygon_parts(hull):
            return None
        return hull
