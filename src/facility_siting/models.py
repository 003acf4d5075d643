"""
Record Types
============

Purpose:
    Typed, immutable records shared by the pipeline stages. Input records
    mirror the two facility datasets; FacilityCandidate is the merged
    output of entity resolution and the unit the solver selects.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class RichFacilityRecord:
    """Authoritative facility attributes (coordinates may be missing)"""
    name: str
    region: str = ''
    location: str = ''
    area: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    category: str = ''
    address: str = ''


@dataclass(frozen=True)
class ScoredFacilityRecord:
    """Facility with modelled coverage contributions, loosely named"""
    name: str
    score: float
    subregion_count: int = 0
    contributions: Tuple[Tuple[str, float], ...] = ()
    display_name: Optional[str] = None


@dataclass(frozen=True)
class FacilityCandidate:
    """Merged facility record; immutable once resolution is done"""
    facility_id: str
    name: str
    region: str = ''
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    area: Optional[float] = None
    location: str = ''
    category: str = ''
    address: str = ''
    coverage_score: float = 0.0
    covered_subregion_count: int = 0
    similarity: float = 0.0
    matched: bool = False
    source_name: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'facility_id': self.facility_id,
            'name': self.name,
            'region': self.region,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'area': self.area,
            'location': self.location,
            'category': self.category,
            'address': self.address,
            'coverage_score': self.coverage_score,
            'covered_subregion_count': self.covered_subregion_count,
            'similarity': self.similarity,
            'matched': self.matched,
            'source_name': self.source_name,
        }


@dataclass(frozen=True)
class SubRegion:
    """Demand sub-region (e.g. an administrative neighbourhood)"""
    code: str
    name: str
    region: str
    geometry: Dict[str, Any] = field(compare=False, repr=False, hash=False)

    @property
    def short_name(self) -> str:
        """Last token of the structured name"""
        parts = self.name.split()
        return parts[-1] if parts else ''
