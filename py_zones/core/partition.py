"""
Territory partition of support-zones.

Two engine variants share the same pipeline:

- ``compute_partition`` tessellates every school at once and clips the cells
  to the largest shape of the boundary document (the department outline).
- ``compute_sub_region_partition`` tessellates each circonscription on its
  own, clips to that circonscription's boundary, and merges zones that span
  several circonscriptions afterwards.

Both are pure functions of their inputs: nothing is cached between calls,
and failures in the geometry kernel degrade the output instead of raising.
"""

from dataclasses import dataclass, field
from typing import Any, AbstractSet, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from ..config import settings
from .clipping import ClippedCell, clip_cells
from .dissolve import dissolve_by_zone, merge_across_sub_regions
from .masks import SubRegionMasks, clean_mask, largest_polygon_mask
from .points import (
    MIN_GROUP_POINTS, MIN_TOTAL_POINTS, Facility, group_by_sub_region, prepare_points
)
from .styling import zone_color
from .tessellation import BBox, voronoi_cells

logger = structlog.get_logger()

CancelCheck = Callable[[], bool]


@dataclass
class ZonePolygon:
    """Final territory of one zone."""

    zone: str
    color: str
    geometry: BaseGeometry
    sub_regions: List[str] = field(default_factory=list)

    def to_feature(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "properties": {
                "pas": self.zone,
                "color": self.color,
                "circonscriptions": list(self.sub_regions),
            },
            "geometry": mapping(self.geometry),
        }


@dataclass
class PartitionResult:
    """Zone polygons plus the mask(s) they were clipped to."""

    zones: List[ZonePolygon] = field(default_factory=list)
    mask: Optional[BaseGeometry] = None
    masks: Dict[str, BaseGeometry] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.zones

    def zone(self, label: str) -> Optional[ZonePolygon]:
        for zone in self.zones:
            if zone.zone == label:
                return zone
        return None

    def to_feature_collection(self, include_masks: bool = False) -> Dict[str, Any]:
        """Export as a GeoJSON FeatureCollection for the map layer."""
        features = [zone.to_feature() for zone in self.zones]
        if include_masks:
            if self.mask is not None:
                features.append(_mask_feature(self.mask, ""))
            for sub_region, mask in self.masks.items():
                features.append(_mask_feature(mask, sub_region))
        return {"type": "FeatureCollection", "features": features}


def _mask_feature(mask: BaseGeometry, sub_region: str) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {"mask": True, "circonscription": sub_region},
        "geometry": mapping(mask),
    }


def _cancelled(cancel: Optional[CancelCheck]) -> bool:
    return cancel is not None and cancel()


def _build_zones(
    merged: Mapping[str, BaseGeometry], sub_regions: Mapping[str, List[str]]
) -> List[ZonePolygon]:
    return [
        ZonePolygon(
            zone=zone,
            color=zone_color(zone),
            geometry=geometry,
            sub_regions=sub_regions.get(zone, []),
        )
        for zone, geometry in merged.items()
        if geometry is not None and not geometry.is_empty
    ]


def _record_sub_regions(cells: Iterable[ClippedCell], seen: Dict[str, List[str]]) -> None:
    for cell in cells:
        labels = seen.setdefault(cell.zone, [])
        if cell.sub_region not in labels:
            labels.append(cell.sub_region)


def compute_partition(
    facilities: Iterable[Facility],
    boundary_document: Optional[Mapping[str, Any]],
    zone_filter: Optional[AbstractSet[str]] = None,
    bbox: Optional[BBox] = None,
    cancel: Optional[CancelCheck] = None,
) -> PartitionResult:
    """
    Partition the department among zones with a single global tessellation.

    Args:
        facilities: Facility records
        boundary_document: GeoJSON whose largest shape is the department
        zone_filter: Zones to display; None displays all
        bbox: Tessellation extent, settings.bbox when omitted
        cancel: Optional callable returning True to abandon the computation

    Returns:
        PartitionResult, empty when fewer than 3 schools qualify or the
        document holds no shape at all
    """
    points = prepare_points(facilities)
    if len(points) < MIN_TOTAL_POINTS:
        logger.info("Not enough points for a partition", points=len(points))
        return PartitionResult()

    raw_mask = largest_polygon_mask(boundary_document)
    if raw_mask is None:
        logger.info("Boundary document holds no shape")
        return PartitionResult()
    mask = clean_mask(raw_mask)

    logger.info("Computing global partition", points=len(points), masked=mask is not None)

    cells = voronoi_cells(points, bbox or settings.bbox)
    if _cancelled(cancel):
        return PartitionResult()

    clipped = clip_cells(cells, points, mask, zone_filter)
    sub_regions: Dict[str, List[str]] = {}
    _record_sub_regions(clipped, sub_regions)

    merged = dissolve_by_zone(clipped)
    result = PartitionResult(zones=_build_zones(merged, sub_regions), mask=mask)

    logger.info("Global partition computed", zones=len(result.zones), cells=len(clipped))
    return result


def compute_sub_region_partition(
    facilities: Iterable[Facility],
    boundary_document: Optional[Mapping[str, Any]],
    zone_filter: Optional[AbstractSet[str]] = None,
    bbox: Optional[BBox] = None,
    name_key: Optional[str] = None,
    cancel: Optional[CancelCheck] = None,
) -> PartitionResult:
    """
    Partition each sub-region separately, then merge zones across them.

    Args:
        facilities: Facility records
        boundary_document: GeoJSON of sub-region boundaries
        zone_filter: Zones to display; None displays all
        bbox: Tessellation extent shared by every group
        name_key: Boundary property naming the sub-region
        cancel: Optional callable returning True to abandon the computation

    Returns:
        PartitionResult with one mask per processed sub-region
    """
    points = prepare_points(facilities)
    if len(points) < MIN_TOTAL_POINTS:
        logger.info("Not enough points for a partition", points=len(points))
        return PartitionResult()

    bbox = bbox or settings.bbox
    lookup = SubRegionMasks(boundary_document, name_key or settings.sub_region_name_key)
    groups = group_by_sub_region(points)

    logger.info(
        "Computing sub-region partition",
        points=len(points), groups=len(groups), boundaries=len(lookup),
    )

    pieces: List[Tuple[str, BaseGeometry]] = []
    sub_regions: Dict[str, List[str]] = {}
    masks: Dict[str, BaseGeometry] = {}

    for label, group in groups.items():
        if _cancelled(cancel):
            logger.info("Partition cancelled")
            return PartitionResult()

        if len(group) < MIN_GROUP_POINTS:
            logger.debug("Sub-region too small to tessellate", sub_region=label, points=len(group))
            continue

        resolution = lookup.resolve(label, group)
        if resolution.mask is None and resolution.source in ("hull", "none"):
            continue
        if resolution.mask is not None:
            masks[label] = resolution.mask

        cells = voronoi_cells(group, bbox)
        clipped = clip_cells(cells, group, resolution.mask, zone_filter)
        _record_sub_regions(clipped, sub_regions)

        for zone, geometry in dissolve_by_zone(clipped).items():
            pieces.append((zone, geometry))

    merged = merge_across_sub_regions(pieces)
    result = PartitionResult(zones=_build_zones(merged, sub_regions), masks=masks)

    logger.info("Sub-region partition computed", zones=len(result.zones), pieces=len(pieces))
    return result
