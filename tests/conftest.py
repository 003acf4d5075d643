import json
import textwrap

import pytest

from facility_siting.config.config_loader import Config
from facility_siting.models import FacilityCandidate, RichFacilityRecord, ScoredFacilityRecord


def square(x0, y0, size=1.0):
    return {
        'type': 'Polygon',
        'coordinates': [[
            [x0, y0], [x0 + size, y0], [x0 + size, y0 + size], [x0, y0 + size], [x0, y0]
        ]],
    }


# Three regions of two unit-square sub-regions each:
#   Alpha-gu: a (0..1, 0..1), b (1..2, 0..1)
#   Beta-gu:  c (0..1, 1..2), d (1..2, 1..2)
#   Gamma-gu: e (0..1, 2..3), f (1..2, 2..3)
BOUNDARY_LAYOUT = [
    ('a', 'Metro Alpha-gu North-dong', square(0, 0)),
    ('b', 'Metro Alpha-gu South-dong', square(1, 0)),
    ('c', 'Metro Beta-gu East-dong', square(0, 1)),
    ('d', 'Metro Beta-gu West-dong', square(1, 1)),
    ('e', 'Metro Gamma-gu Upper-dong', square(0, 2)),
    ('f', 'Metro Gamma-gu Lower-dong', square(1, 2)),
]


@pytest.fixture
def boundary_features():
    return [{'code': code, 'name': name, 'geometry': geom} for code, name, geom in BOUNDARY_LAYOUT]


@pytest.fixture
def demand_index():
    return {'Beta-gu': 0.2, 'Alpha-gu': 0.9, 'Gamma-gu': -0.4}


@pytest.fixture
def rich_records():
    return [
        RichFacilityRecord(name='Riverside Park', region='Alpha', location='Riverside',
                           area=1200.0, latitude=0.5, longitude=0.5),
        RichFacilityRecord(name='Hillview Park', region='Alpha-gu', location='Hillview',
                           area=800.0, latitude=0.5, longitude=1.5),
        RichFacilityRecord(name='Lakeside Park', region='Beta', location='Lakeside',
                           area=500.0, latitude=1.5, longitude=0.5),
        RichFacilityRecord(name='Nowhere Park', region='Alpha', location='Unknown',
                           area=300.0, latitude=None, longitude=None),
    ]


@pytest.fixture
def scored_records():
    return [
        ScoredFacilityRecord(name='Riverside Park', score=1.0, subregion_count=2,
                             contributions=(('a', 0.6), ('b', 0.4))),
        ScoredFacilityRecord(name='Hillview Park', score=0.9, subregion_count=1,
                             contributions=(('b', 0.9),)),
        ScoredFacilityRecord(name='Lakeside Park', score=0.7, subregion_count=2,
                             contributions=(('c', 0.5), ('d', 0.2))),
        ScoredFacilityRecord(name='Zzyzx Qwerty Grounds', score=0.3, subregion_count=1,
                             contributions=(('e', 0.3),)),
    ]


def make_facility(facility_id, region='Alpha-gu', lat=0.5, lng=0.5, **kwargs):
    return FacilityCandidate(
        facility_id=facility_id,
        name=kwargs.pop('name', facility_id),
        region=region,
        latitude=lat,
        longitude=lng,
        matched=True,
        source_name=facility_id,
        **kwargs
    )


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(textwrap.dedent("""
        project:
          name: "Test Siting"
          version: "0.0.1"
        geography:
          city_prefix: "Metro"
          region_suffix: "-gu"
          expected_region_count: 3
          alignment_tolerance: 0.001
          bounds:
            min_lat: -1.0
            max_lat: 4.0
            min_lng: -1.0
            max_lng: 3.0
        entity_resolution:
          similarity_threshold: 0.5
          strip_suffixes: ["citypark"]
          strip_prefixes: []
        solver:
          k: 1
        fields:
          boundary_code: "code"
          boundary_name: "name"
          district_name: "district"
          rich_name: "name"
          rich_region: "region"
          rich_location: "location"
          rich_area: "area"
          rich_latitude: "lat"
          rich_longitude: "lng"
          rich_category: "category"
          rich_address: "address"
        paths:
          boundaries: "data/boundaries.geojson"
          districts: "data/districts.geojson"
          demand_index: "data/demand.json"
          rich_facilities: "data/parks.json"
          scored_facilities: "data/scored.json"
          outputs: "out"
    """), encoding='utf-8')
    return path


@pytest.fixture
def cfg(config_path, tmp_path):
    return Config(str(config_path), base_path=tmp_path)


@pytest.fixture
def data_dir(tmp_path, boundary_features, demand_index):
    """Input files matching the config_path fixture"""
    data = tmp_path / "data"
    data.mkdir()

    collection = {
        'type': 'FeatureCollection',
        'features': [
            {'type': 'Feature',
             'properties': {'code': f['code'], 'name': f['name']},
             'geometry': f['geometry']}
            for f in boundary_features
        ],
    }
    (data / "boundaries.geojson").write_text(json.dumps(collection), encoding='utf-8')
    (data / "demand.json").write_text(json.dumps(demand_index), encoding='utf-8')

    parks = [
        {'name': 'Riverside Citypark', 'region': 'Alpha', 'location': 'Riverside',
         'area': '1,200', 'lat': 0.5, 'lng': 0.5},
        {'name': 'Hillview Park', 'region': 'Alpha', 'location': 'Hillview',
         'area': '800', 'lat': 0.5, 'lng': 1.5},
        {'name': 'Stray Park', 'region': 'Alpha', 'location': 'Across the river',
         'area': '100', 'lat': 1.5, 'lng': 1.5},
        {'name': 'Blank Park', 'region': 'Alpha', 'location': '',
         'area': '', 'lat': '', 'lng': ''},
    ]
    (data / "parks.json").write_text(json.dumps(parks), encoding='utf-8')

    scored = {
        'allParksData': {
            'Riverside': {'score': 1.0, 'coveredDongs': 2,
                          'contributions': [['a', 0.6], ['b', 0.4]]},
            'Hillview Park': {'score': 0.9, 'coveredDongs': 1,
                              'contributions': [['b', 0.9]]},
            'Stray Park': {'score': 5.0, 'coveredDongs': 1,
                           'contributions': [['d', 5.0]]},
        }
    }
    (data / "scored.json").write_text(json.dumps(scored), encoding='utf-8')
    return data
