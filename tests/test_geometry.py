import pytest
from shapely.geometry import Point, Polygon

from facility_siting.geometry import (
    contains, distance, distances_km, geometry_contains
)


SQUARE = [[0, 0], [4, 0], [4, 4], [0, 4], [0, 0]]
CONCAVE = [[0, 0], [6, 0], [6, 6], [3, 3], [0, 6]]

SEOUL_CITY_HALL = (37.5663, 126.9779)
GANGNAM_STATION = (37.4979, 127.0276)


class TestDistance:

    def test_symmetric(self):
        assert distance(SEOUL_CITY_HALL, GANGNAM_STATION) == pytest.approx(
            distance(GANGNAM_STATION, SEOUL_CITY_HALL), rel=1e-12
        )

    def test_zero_for_same_point(self):
        assert distance(SEOUL_CITY_HALL, SEOUL_CITY_HALL) == 0

    def test_urban_scale_accuracy(self):
        # City Hall to Gangnam Station is roughly 8.8 km
        assert distance(SEOUL_CITY_HALL, GANGNAM_STATION) == pytest.approx(8.8, abs=0.3)

    def test_one_degree_of_latitude(self):
        assert distance((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111.19, abs=0.05)

    def test_vectorized_matches_scalar(self):
        points = [GANGNAM_STATION, SEOUL_CITY_HALL, (37.6, 127.1)]
        dists = distances_km(SEOUL_CITY_HALL, points)
        assert len(dists) == 3
        for point, d in zip(points, dists):
            assert d == pytest.approx(distance(SEOUL_CITY_HALL, point))

    def test_vectorized_empty(self):
        assert len(distances_km(SEOUL_CITY_HALL, [])) == 0


class TestContains:

    @pytest.mark.parametrize('ring', [SQUARE, CONCAVE])
    @pytest.mark.parametrize('point', [
        (1, 1), (2, 2), (3.9, 0.1), (0.5, 5.0), (5.5, 5.0), (3, 4.5), (-1, 2), (7, 7), (2, -0.5)
    ])
    def test_agrees_with_shapely(self, ring, point):
        reference = Polygon(ring)
        shapely_point = Point(point)
        if reference.boundary.distance(shapely_point) < 1e-9:
            pytest.skip("point on boundary")
        assert contains(point, ring) == reference.contains(shapely_point)

    def test_implicitly_closed_ring(self):
        assert contains((2, 2), SQUARE[:-1])
        assert not contains((5, 2), SQUARE[:-1])

    def test_edge_behaviour_is_deterministic(self):
        # Half-open rule: bottom/left edges inside, top/right edges outside
        assert contains((2, 0), SQUARE)
        assert contains((0, 2), SQUARE)
        assert not contains((2, 4), SQUARE)
        assert not contains((4, 2), SQUARE)
        assert contains((2, 0), SQUARE) == contains((2, 0), SQUARE)

    @pytest.mark.parametrize('ring', [[], [[0, 0]], [[0, 0], [1, 1]], [[0, 0], [1, 1], [0, 0]]])
    def test_degenerate_ring_is_false(self, ring):
        assert contains((0.5, 0.5), ring) is False

    def test_one_dimensional_vertex_raises(self):
        with pytest.raises(ValueError):
            contains((0.5, 0.5), [[0], [1, 0], [1, 1]])


class TestGeometryContains:

    def test_polygon_hole_excluded(self):
        geometry = {
            'type': 'Polygon',
            'coordinates': [SQUARE, [[1, 1], [3, 1], [3, 3], [1, 3], [1, 1]]],
        }
        assert geometry_contains((0.5, 0.5), geometry)
        assert not geometry_contains((2, 2), geometry)

    def test_multipolygon_any_member(self):
        geometry = {
            'type': 'MultiPolygon',
            'coordinates': [
                [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
                [[[10, 10], [11, 10], [11, 11], [10, 11], [10, 10]]],
            ],
        }
        assert geometry_contains((10.5, 10.5), geometry)
        assert geometry_contains((0.5, 0.5), geometry)
        assert not geometry_contains((5, 5), geometry)

    def test_unsupported_type_raises(self):
        with pytest.raises(ValueError):
            geometry_contains((0, 0), {'type': 'Point', 'coordinates': [0, 0]})
