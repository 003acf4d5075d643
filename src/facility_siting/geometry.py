"""
Geometry Primitives
===================

Purpose:
    Great-circle distance and point-in-polygon containment on WGS84
    lon/lat degrees. Pure functions, no projection.

Conventions:
    - distance() takes (lat, lng) pairs
    - contains() takes a (lng, lat) point and [lng, lat] vertices, the
      GeoJSON axis order of the boundary data

Edge behaviour of contains():
    Half-open crossing rule (yi > y) != (yj > y) with a strict x < test.
    A point on a bottom or left edge counts as inside, a point on a top
    or right edge as outside. Deterministic for a given vertex order.
"""

import numpy as np
from typing import Any, Dict, Iterable, List, Sequence, Tuple


EARTH_RADIUS_KM = 6371.0


# ============================================================================
# DISTANCE
# ============================================================================

def distance(point_a: Tuple[float, float], point_b: Tuple[float, float]) -> float:
    """
    Haversine great-circle distance in kilometers

    Args:
        point_a: (lat, lng) in degrees
        point_b: (lat, lng) in degrees

    Returns:
        Distance in km
    """
    lat1, lng1 = point_a
    lat2, lng2 = point_b
    return float(distances_km((lat1, lng1), [(lat2, lng2)])[0])


def distances_km(point: Tuple[float, float],
                 points: Sequence[Tuple[float, float]]) -> np.ndarray:
    """Vectorized haversine from one (lat, lng) point to many"""
    if len(points) == 0:
        return np.zeros(0)

    lat1, lng1 = np.radians(point[0]), np.radians(point[1])
    arr = np.radians(np.asarray(points, dtype=float))
    lat2, lng2 = arr[:, 0], arr[:, 1]

    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = np.sin(dlat/2)**2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlng/2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


# ============================================================================
# CONTAINMENT
# ============================================================================

def _ring_vertices(ring: Iterable[Sequence[float]]) -> List[Tuple[float, float]]:
    """Validate vertex dimensions and drop the closing vertex"""
    vertices = []
    for vertex in ring:
        if len(vertex) < 2:
            raise ValueError(f"Vertex needs at least 2 dimensions, got {vertex!r}")
        vertices.append((float(vertex[0]), float(vertex[1])))

    if len(vertices) > 1 and vertices[0] == vertices[-1]:
        vertices = vertices[:-1]
    return vertices


def _crossings(x: float, y: float, vertices: List[Tuple[float, float]]) -> bool:
    """Even-odd parity of ray crossings to the right of (x, y)"""
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def contains(point: Tuple[float, float], polygon: Iterable[Sequence[float]]) -> bool:
    """
    Even-odd ray casting test against a single ring

    Args:
        point: (lng, lat)
        polygon: [lng, lat] vertices, closed or implicitly closed

    Returns:
        True if the point is inside. Rings with fewer than 3 vertices
        return False.
    """
    vertices = _ring_vertices(polygon)
    if len(vertices) < 3:
        return False
    return _crossings(point[0], point[1], vertices)


def _polygon_contains(point: Tuple[float, float], rings: Sequence) -> bool:
    # Parity over every ring so that holes are excluded
    inside = False
    for ring in rings:
        vertices = _ring_vertices(ring)
        if len(vertices) < 3:
            continue
        if _crossings(point[0], point[1], vertices):
            inside = not inside
    return inside


def geometry_contains(point: Tuple[float, float], geometry: Dict[str, Any]) -> bool:
    """
    Containment against a GeoJSON-like Polygon or MultiPolygon

    Args:
        point: (lng, lat)
        geometry: {"type": ..., "coordinates": ...}

    Returns:
        True if any constituent polygon contains the point
    """
    geom_type = geometry.get('type')
    coords = geometry.get('coordinates') or []

    if geom_type == 'Polygon':
        return _polygon_contains(point, coords)
    elif geom_type == 'MultiPolygon':
        return any(_polygon_contains(point, polygon) for polygon in coords)
    else:
        raise ValueError(f"Unsupported geometry type: {geom_type!r}")
