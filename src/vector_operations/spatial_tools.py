"""
Vector data helpers for the tutorial: points, lines and polygons in
geopandas, reprojection, buffering, overlays and spatial joins.

The geometry work is done by geopandas/shapely. These helpers only take care
of CRS handling so that distances and areas are computed in metres.
"""

import logging
import geopandas as gpd

from src.config import WGS84, METRIC_CRS

logger = logging.getLogger(__name__)


def points_from_coordinates(df, x='lon', y='lat', crs=WGS84):
    """Turn a table with coordinate columns into a point layer."""
    return gpd.GeoDataFrame(df.copy(), geometry=gpd.points_from_xy(df[x], df[y]), crs=crs)


def reproject(layer, crs):
    """Transform a layer to `crs`. The layer must already have a CRS."""
    if layer.crs is None:
        raise ValueError("Layer has no CRS, set one with set_crs() before reprojecting")
    return layer.to_crs(crs)


def buffer_geometries(layer, distance, crs=None):
    """
    Buffer every geometry by `distance` in the units of a projected CRS.

    Geographic layers are buffered in `crs` (METRIC_CRS when not given) and
    transformed back, so `distance` is always a length rather than degrees.
    """
    if layer.crs is None:
        raise ValueError("Layer has no CRS, cannot tell the unit of the buffer distance")

    working_crs = crs
    if working_crs is None and layer.crs.is_geographic:
        logger.warning(f"Layer is in geographic CRS {layer.crs}, buffering in {METRIC_CRS}")
        working_crs = METRIC_CRS

    if working_crs is None:
        buffered = layer.copy()
        buffered.geometry = layer.geometry.buffer(distance)
        return buffered

    projected = layer.to_crs(working_crs)
    projected.geometry = projected.geometry.buffer(distance)
    return projected.to_crs(layer.crs)


def intersect_layers(a, b):
    """Polygon overlay keeping only the parts covered by both layers, in the CRS of `a`."""
    if a.crs != b.crs:
        b = reproject(b, a.crs)
    return gpd.overlay(a, b, how='intersection', keep_geom_type=True)


def convex_hull(layer):
    """Smallest convex polygon enclosing every geometry in the layer."""
    geometries = layer.geometry.dropna()
    if geometries.empty:
        raise ValueError("Cannot compute the convex hull of an empty layer")
    return geometries.union_all().convex_hull


def join_points_to_regions(points, regions, predicate='within'):
    """
    Attach region attributes to each point that falls inside a region.

    Points outside every region are kept with missing region attributes.
    """
    if points.crs != regions.crs:
        regions = reproject(regions, points.crs)
    joined = gpd.sjoin(points, regions, how='left', predicate=predicate)
    return joined.drop(columns='index_right')


def region_areas_km2(regions, crs=METRIC_CRS):
    """Area of each geometry in square kilometres, computed in an equal-unit CRS."""
    return reproject(regions, crs).geometry.area / 1e6
