"""
Facility Entity Resolution
==========================

Purpose:
    Reconcile facility names between the authoritative ("rich") dataset
    and the coverage-scored dataset, which were authored independently
    and disagree on suffixes, punctuation and spacing

Methodology:
    1. Normalize names (case, conventional suffixes, whitespace, brackets)
    2. Score every rich record against a scored record with normalized
       Levenshtein similarity
    3. Keep the first best-scoring rich record; accept it only above the
       threshold
    4. Merge descriptive attributes from rich with scores from scored

Note:
    Each scored record picks its match independently, so two scored
    records may resolve to the same rich record (one-sided greedy
    matching).
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from facility_siting.models import FacilityCandidate, RichFacilityRecord, ScoredFacilityRecord


DEFAULT_THRESHOLD = 0.5

DEFAULT_STRIP_SUFFIXES = ('<시공원>', '시공원', '<citypark>', 'citypark')

_REMOVED_CHARS = re.compile(r'[\s<>()_]+')


# ============================================================================
# NORMALIZATION & SIMILARITY
# ============================================================================

def normalize_name(name: Optional[str],
                   strip_suffixes: Sequence[str] = DEFAULT_STRIP_SUFFIXES,
                   strip_prefixes: Sequence[str] = ()) -> str:
    """
    Normalize a facility name for matching

    Args:
        name: Raw facility name
        strip_suffixes: Conventional trailing tokens to drop, tried in order
        strip_prefixes: Conventional leading tokens to drop, tried in order

    Returns:
        Lower-case name without the tokens, whitespace or <>()_ characters
    """
    if not isinstance(name, str):
        return ''

    text = name.lower().strip()

    for suffix in strip_suffixes:
        suffix = suffix.lower()
        if suffix and text.endswith(suffix):
            text = text[:-len(suffix)].rstrip()

    for prefix in strip_prefixes:
        prefix = prefix.lower()
        if prefix and text.startswith(prefix):
            text = text[len(prefix):].lstrip()

    return _REMOVED_CHARS.sub('', text)


def similarity(a: str, b: str) -> float:
    """(maxLen - editDistance) / maxLen; two empty strings are identical"""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(a, b)) / longest


# ============================================================================
# RESOLUTION
# ============================================================================

@dataclass(frozen=True)
class ResolutionResult:
    """Merged facility set, one entry per scored record"""
    facilities: Tuple[FacilityCandidate, ...]
    matched_count: int
    unmatched_names: Tuple[str, ...]

    @property
    def total(self) -> int:
        return len(self.facilities)

    @property
    def match_rate(self) -> float:
        return self.matched_count / self.total if self.total else 0.0

    @property
    def matched(self) -> List[FacilityCandidate]:
        return [f for f in self.facilities if f.matched]

    def report(self) -> List[str]:
        """Matching report lines"""
        lines = [
            f"Total scored facilities: {self.total}",
            f"Matched: {self.matched_count}",
            f"Unmatched: {len(self.unmatched_names)}",
            f"Match rate: {self.match_rate * 100:.1f}%",
        ]
        for name in self.unmatched_names:
            lines.append(f"  - unmatched: {name}")
        return lines


def _merge(scored: ScoredFacilityRecord,
           rich: Optional[RichFacilityRecord],
           score: float) -> FacilityCandidate:
    source_name = scored.display_name or scored.name

    if rich is None:
        return FacilityCandidate(
            facility_id=scored.name.strip(),
            name=source_name,
            coverage_score=scored.score,
            covered_subregion_count=scored.subregion_count,
            similarity=0.0,
            matched=False,
            source_name=source_name
        )

    return FacilityCandidate(
        facility_id=scored.name.strip(),
        name=rich.name,
        region=rich.region,
        latitude=rich.latitude,
        longitude=rich.longitude,
        area=rich.area,
        location=rich.location,
        category=rich.category,
        address=rich.address,
        coverage_score=scored.score,
        covered_subregion_count=scored.subregion_count,
        similarity=score,
        matched=True,
        source_name=source_name
    )


def resolve_entities(scored_records: Sequence[ScoredFacilityRecord],
                     rich_records: Sequence[RichFacilityRecord],
                     threshold: float = DEFAULT_THRESHOLD,
                     strip_suffixes: Sequence[str] = DEFAULT_STRIP_SUFFIXES,
                     strip_prefixes: Sequence[str] = ()) -> ResolutionResult:
    """
    Resolve every scored record against the rich dataset

    Args:
        scored_records: Facilities with coverage scores (looser naming)
        rich_records: Facilities with authoritative attributes
        threshold: Similarity must be strictly greater than this to match
        strip_suffixes: Passed to normalize_name
        strip_prefixes: Passed to normalize_name

    Returns:
        ResolutionResult with one FacilityCandidate per scored record;
        unmatched entries have matched=False and no coordinates
    """
    rich_normalized = [
        normalize_name(r.name, strip_suffixes, strip_prefixes) for r in rich_records
    ]

    facilities = []
    unmatched = []

    for scored in scored_records:
        key = normalize_name(scored.name, strip_suffixes, strip_prefixes)

        best_record = None
        best_score = 0.0
        for record, normalized in zip(rich_records, rich_normalized):
            score = similarity(key, normalized)
            if score > best_score:
                best_score = score
                best_record = record

        if best_record is not None and best_score > threshold:
            facilities.append(_merge(scored, best_record, best_score))
        else:
            facilities.append(_merge(scored, None, 0.0))
            unmatched.append(scored.name)

    return ResolutionResult(
        facilities=tuple(facilities),
        matched_count=len(facilities) - len(unmatched),
        unmatched_names=tuple(unmatched)
    )
