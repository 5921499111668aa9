from shapely.geometry import Point, box, mapping, shape

__all__ = ["aoi_to_polygon", "aoi_to_geojson", "polygon_contains", "polygon_covers"]


def aoi_to_polygon(aoi):
    """
    Accepts:
      - bbox [minx, miny, maxx, maxy] (lon/lat order)
      - GeoJSON dict
    Returns a shapely geometry.
    """
    if isinstance(aoi, (list, tuple)) and len(aoi) == 4:
        return box(*aoi)
    if isinstance(aoi, dict) and "type" in aoi:
        return shape(aoi)
    raise TypeError("AOI must be a bbox list or GeoJSON dict")


def aoi_to_geojson(aoi):
    return mapping(aoi_to_polygon(aoi))


def polygon_contains(aoi, lon, lat):
    """True when the point lies inside or on the boundary of the AOI."""
    return aoi_to_polygon(aoi).covers(Point(lon, lat))


def polygon_covers(outer, inner):
    return aoi_to_polygon(outer).covers(aoi_to_polygon(inner))
