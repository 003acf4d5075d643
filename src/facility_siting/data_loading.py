"""
Dataset Loading
===============

Purpose:
    Read the four input datasets from disk into the record types the
    pipeline stages consume. Parsing stays here; the stages do no I/O.

Inputs:
    - Boundary GeoJSON (sub-regions) and optional region-level GeoJSON
    - Demand index JSON {region: score}
    - Rich facility table (JSON array or CSV)
    - Scored facility JSON (MCLP results)
"""

import json
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import geopandas as gpd
import pandas as pd
from shapely.geometry import mapping

from facility_siting.config.config_loader import FieldsConfig
from facility_siting.errors import DataQualityWarning, MissingDependencyWarning
from facility_siting.models import RichFacilityRecord, ScoredFacilityRecord
from facility_siting.spatial_assignment import parse_coordinate


def _text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and pd.isna(value):
        return ''
    return str(value).strip()


def _number(value: Any) -> Optional[float]:
    """Numeric cell; thousands separators allowed, blanks absent"""
    if isinstance(value, str):
        value = value.replace(',', '')
    return parse_coordinate(value)


# ============================================================================
# BOUNDARIES
# ============================================================================

def load_boundary_features(path: Path, fields: FieldsConfig) -> List[Dict[str, Any]]:
    """
    Load sub-region features as {'code', 'name', 'geometry'} mappings

    Null or non-polygonal geometries are dropped with a warning.
    """
    print(f"\n📂 Loading boundaries: {path}")
    gdf = gpd.read_file(path)

    features = []
    dropped = 0
    for _, row in gdf.iterrows():
        geom = row.geometry
        if geom is None or geom.is_empty or geom.geom_type not in ('Polygon', 'MultiPolygon'):
            dropped += 1
            continue
        features.append({
            'code': _text(row.get(fields.boundary_code)),
            'name': _text(row.get(fields.boundary_name)),
            'geometry': mapping(geom),
        })

    if dropped:
        warnings.warn(f"Dropped {dropped} boundary features without polygon geometry",
                      DataQualityWarning)

    print(f"  ✓ Loaded {len(features)} sub-regions")
    return features


def load_region_layer(path: Optional[Path], fields: FieldsConfig) -> Optional[gpd.GeoDataFrame]:
    """Region-level layer for alignment checks; None if not configured or absent"""
    if path is None or not Path(path).exists():
        return None
    gdf = gpd.read_file(path)
    print(f"  ✓ Loaded {len(gdf)} regions from {path}")
    return gdf


def region_layer_names(gdf: gpd.GeoDataFrame, fields: FieldsConfig) -> List[str]:
    return [_text(name) for name in gdf[fields.district_name]]


def region_layer_geometries(gdf: gpd.GeoDataFrame) -> List[Dict[str, Any]]:
    return [mapping(geom) for geom in gdf.geometry if geom is not None and not geom.is_empty]


# ============================================================================
# DEMAND INDEX
# ============================================================================

def load_demand_index(path: Path) -> Optional[Dict[str, float]]:
    """
    Load {region: imbalance}; None when the file is missing

    Non-numeric scores are dropped with a warning.
    """
    path = Path(path)
    if not path.exists():
        warnings.warn(f"Demand index not found: {path}", MissingDependencyWarning)
        return None

    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    demand = {}
    for region, value in raw.items():
        number = _number(value)
        if number is None:
            warnings.warn(f"Non-numeric demand index for {region!r}", DataQualityWarning)
            continue
        demand[region] = number

    print(f"  ✓ Demand index: {len(demand)} regions")
    return demand


# ============================================================================
# FACILITIES
# ============================================================================

def _read_table(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == '.csv':
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    with open(path, 'r', encoding='utf-8') as f:
        return pd.DataFrame(json.load(f))


def load_rich_facilities(path: Path, fields: FieldsConfig) -> List[RichFacilityRecord]:
    """
    Load the authoritative facility table

    Present-but-empty coordinate cells become None.
    """
    path = Path(path)
    print(f"\n🏞️  Loading facilities: {path}")
    df = _read_table(path)
    columns = fields.rich_columns()

    if columns['name'] not in df.columns:
        raise ValueError(f"Facility table has no name column {columns['name']!r}")

    # Absent optional columns read as empty
    df = df.reindex(columns=list(dict.fromkeys(list(df.columns) + list(columns.values()))))

    records = []
    for _, row in df.iterrows():
        name = _text(row[columns['name']])
        if not name:
            continue
        records.append(RichFacilityRecord(
            name=name,
            region=_text(row[columns['region']]),
            location=_text(row[columns['location']]),
            area=_number(row[columns['area']]),
            latitude=parse_coordinate(row[columns['latitude']]),
            longitude=parse_coordinate(row[columns['longitude']]),
            category=_text(row[columns['category']]),
            address=_text(row[columns['address']])
        ))

    with_coords = sum(1 for r in records if r.latitude is not None and r.longitude is not None)
    print(f"  ✓ Loaded {len(records)} facilities ({with_coords} with coordinates)")
    return records


def _scored_record(name: str, entry: Dict[str, Any]) -> ScoredFacilityRecord:
    contributions = []
    for pair in entry.get('contributions') or []:
        if isinstance(pair, dict):
            contributions.append((pair.get('code'), pair.get('value')))
        else:
            contributions.append((pair[0], pair[1]))

    count = entry.get('coveredDongs', entry.get('subregion_count'))
    if count is None:
        count = len(contributions)

    return ScoredFacilityRecord(
        name=name,
        score=_number(entry.get('score')) or 0.0,
        subregion_count=int(count),
        contributions=tuple(contributions),
        display_name=entry.get('originalName')
    )


def load_scored_facilities(path: Path) -> List[ScoredFacilityRecord]:
    """
    Load MCLP scored facilities

    Accepts {"allParksData": {name: {...}}} or a list of {"name": ..., ...}.
    """
    path = Path(path)
    print(f"\n📊 Loading scored facilities: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    if isinstance(raw, dict):
        entries = raw.get('allParksData', raw)
        records = [_scored_record(name, entry) for name, entry in entries.items()]
    else:
        records = [_scored_record(entry['name'], entry) for entry in raw]

    print(f"  ✓ Loaded {len(records)} scored facilities")
    return records
