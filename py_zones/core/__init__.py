"""
Core territory partitioning functionality.
"""

from .points import Facility, LabeledPoint, prepare_points, group_by_sub_region
from .masks import SubRegionMasks, largest_polygon_mask, clean_mask, filter_department
from .tessellation import DEFAULT_BBOX, voronoi_cells
from .clipping import ClippedCell, clip_cells
from .dissolve import dissolve_by_zone, merge_across_sub_regions
from .styling import zone_color
from .partition import ZonePolygon, PartitionResult, compute_partition, compute_sub_region_partition

__all__ = ['Facility', 'LabeledPoint', 'prepare_points', 'group_by_sub_region',
           'SubRegionMasks', 'largest_polygon_mask', 'clean_mask', 'filter_department',
           'DEFAULT_BBOX', 'voronoi_cells', 'ClippedCell', 'clip_cells',
           'dissolve_by_zone', 'merge_across_sub_regions', 'zone_color',
           'ZonePolygon', 'PartitionResult', 'compute_partition', 'compute_sub_region_partition']
