"""
Configuration Loader with Validation
====================================

Purpose:
    Load and validate config.yml with comprehensive error checking

Design Principles:
    - Fail fast: Catch configuration errors before analysis runs
    - Type safety: Return typed objects, not raw dictionaries
    - Self-documenting: Config object has clear attribute names
"""

import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
import warnings


# ============================================================================
# DATA CLASSES FOR TYPE-SAFE ACCESS
# ============================================================================

@dataclass
class BoundsConfig:
    """Sanity bounding box for facility coordinates (degrees)"""
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def __post_init__(self):
        """Validate coordinate ranges"""
        if not (-90.0 <= self.min_lat < self.max_lat <= 90.0):
            raise ValueError(
                f"Invalid latitude bounds: {self.min_lat} - {self.max_lat}"
            )
        if not (-180.0 <= self.min_lng < self.max_lng <= 180.0):
            raise ValueError(
                f"Invalid longitude bounds: {self.min_lng} - {self.max_lng}"
            )


@dataclass
class GeographyConfig:
    """Administrative hierarchy parsing and validation"""
    city_prefix: Optional[str]
    region_suffix: str
    expected_region_count: int
    bounds: BoundsConfig
    alignment_tolerance: float = 0.001

    def __post_init__(self):
        """Validate hierarchy settings"""
        if not self.region_suffix:
            raise ValueError("region_suffix cannot be empty")
        if self.expected_region_count < 1:
            raise ValueError(
                f"expected_region_count must be positive, got {self.expected_region_count}"
            )
        if self.alignment_tolerance < 0:
            raise ValueError("alignment_tolerance cannot be negative")


@dataclass
class EntityResolutionConfig:
    """Name matching between rich and scored facility datasets"""
    similarity_threshold: float
    strip_suffixes: List[str] = field(default_factory=list)
    strip_prefixes: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate threshold range"""
        if not (0.0 <= self.similarity_threshold < 1.0):
            raise ValueError(
                f"similarity_threshold must be in [0, 1), got {self.similarity_threshold}"
            )
        if self.similarity_threshold < 0.3:
            warnings.warn(
                f"Low similarity threshold ({self.similarity_threshold}) "
                f"will accept many spurious matches"
            )


@dataclass
class SolverConfig:
    """Greedy coverage solver parameters"""
    k: int

    def __post_init__(self):
        if self.k < 1:
            raise ValueError(f"Solver k must be at least 1, got {self.k}")


@dataclass
class FieldsConfig:
    """Column / property names in the raw datasets"""
    boundary_code: str = "adm_cd"
    boundary_name: str = "adm_nm"
    district_name: str = "SIG_KOR_NM"
    rich_name: str = "name"
    rich_region: str = "region"
    rich_location: str = "location"
    rich_area: str = "area"
    rich_latitude: str = "latitude"
    rich_longitude: str = "longitude"
    rich_category: str = "category"
    rich_address: str = "address"

    def rich_columns(self) -> Dict[str, str]:
        """Map FacilityRecord attribute -> raw column name"""
        return {
            'name': self.rich_name,
            'region': self.rich_region,
            'location': self.rich_location,
            'area': self.rich_area,
            'latitude': self.rich_latitude,
            'longitude': self.rich_longitude,
            'category': self.rich_category,
            'address': self.rich_address,
        }


@dataclass
class PathsConfig:
    """Input datasets and output directory"""
    boundaries: str
    demand_index: str
    rich_facilities: str
    scored_facilities: str
    outputs: str
    districts: Optional[str] = None

    def __post_init__(self):
        """Convert to Path objects"""
        for attr in ['boundaries', 'demand_index', 'rich_facilities',
                     'scored_facilities', 'outputs', 'districts']:
            path_str = getattr(self, attr)
            if path_str is not None:
                setattr(self, attr, Path(path_str))

    def resolve(self, base_path: Path):
        """Make relative paths absolute against base_path"""
        for attr in ['boundaries', 'demand_index', 'rich_facilities',
                     'scored_facilities', 'outputs', 'districts']:
            path_obj = getattr(self, attr)
            if path_obj is not None and not path_obj.is_absolute():
                setattr(self, attr, base_path / path_obj)


# ============================================================================
# MAIN CONFIG CLASS
# ============================================================================

class Config:
    """
    Main configuration class with validated parameters

    Usage:
        cfg = Config()
        k = cfg.solver.k
        threshold = cfg.entity_resolution.similarity_threshold
    """

    def __init__(self, config_path: Optional[str] = None,
                 base_path: Optional[Path] = None):
        """
        Load and validate configuration

        Args:
            config_path: Path to config.yml (default: bundled config.yml)
            base_path: Directory relative data paths are resolved against
                (default: current directory)
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yml"

        self.config_path = Path(config_path)

        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {self.config_path}\n"
                f"Pass an explicit path or restore the bundled config.yml"
            )

        with open(self.config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)

        self._parse_config(raw_config)
        self.paths.resolve(Path(base_path) if base_path is not None else Path.cwd())

        print(f"✓ Configuration loaded: {self.config_path}")

    def _parse_config(self, cfg: Dict[str, Any]):
        """Parse raw yml into typed objects"""

        self.project_name = cfg['project']['name']
        self.project_version = cfg['project']['version']

        geo = cfg['geography']
        self.geography = GeographyConfig(
            city_prefix=geo.get('city_prefix'),
            region_suffix=geo['region_suffix'],
            expected_region_count=geo['expected_region_count'],
            bounds=BoundsConfig(**geo['bounds']),
            alignment_tolerance=geo.get('alignment_tolerance', 0.001)
        )

        er = cfg['entity_resolution']
        self.entity_resolution = EntityResolutionConfig(
            similarity_threshold=er['similarity_threshold'],
            strip_suffixes=list(er.get('strip_suffixes') or []),
            strip_prefixes=list(er.get('strip_prefixes') or [])
        )

        self.solver = SolverConfig(**cfg['solver'])
        self.fields = FieldsConfig(**(cfg.get('fields') or {}))
        self.paths = PathsConfig(**cfg['paths'])

    def summary(self):
        """Print configuration summary"""
        print("="*80)
        print(f"CONFIGURATION SUMMARY: {self.project_name}")
        print("="*80)

        bounds = self.geography.bounds
        print(f"\n🗺️  Geography:")
        print(f"   City prefix: {self.geography.city_prefix or '(any)'}")
        print(f"   Region suffix: {self.geography.region_suffix}")
        print(f"   Expected regions: {self.geography.expected_region_count}")
        print(f"   Bounds: {bounds.min_lat}-{bounds.max_lat}°N, "
              f"{bounds.min_lng}-{bounds.max_lng}°E")

        print(f"\n🔗 Entity Resolution:")
        print(f"   Similarity threshold: > {self.entity_resolution.similarity_threshold}")
        print(f"   Stripped suffixes: {', '.join(self.entity_resolution.strip_suffixes) or '-'}")

        print(f"\n🎯 Solver:")
        print(f"   Sites to select (K): {self.solver.k}")

        print("\n" + "="*80)


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def load_config(config_path: Optional[str] = None,
                base_path: Optional[Path] = None) -> Config:
    """
    Load configuration (convenience function)

    Args:
        config_path: Path to config.yml (optional)
        base_path: Directory for relative data paths (optional)

    Returns:
        Config object
    """
    return Config(config_path, base_path=base_path)


if __name__ == "__main__":
    cfg = load_config()
    cfg.summary()
