"""
YAML data loader with schema validation.

Loads the world configuration and the block/archetype catalog from YAML
files and validates them against JSON schemas.
"""

import yaml
import json
from pathlib import Path
from typing import Dict, List, Optional
import jsonschema
import numpy as np

from .data_types import (
    Archetype, BlockType, Catalog, GasKind, NUM_BLOCK_TYPES,
    SimulationConfig, World, WorldParameters, composition_vector
)


DEFAULT_DATA_ROOT = Path(__file__).parent / "data"
DEFAULT_SCHEMA_DIR = DEFAULT_DATA_ROOT / "schemas"
DEFAULT_WORLD_FILE = Path("world") / "petri.yaml"


class DataLoadError(Exception):
    """Raised when data loading or validation fails"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")


def validate_against_schema(data: dict, schema_path: Path, data_path: Path):
    """Validate data dict against JSON schema"""
    if not schema_path.exists():
        # Schema validation optional when a custom schema dir omits a file
        return

    try:
        with open(schema_path, 'r') as f:
            schema = json.load(f)
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise DataLoadError(f"Validation error in {data_path}: {e.message}")
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


def parse_block_type(name: str, context: str) -> BlockType:
    """Resolve a block type name, raising DataLoadError for unknown names"""
    try:
        return BlockType[name]
    except KeyError:
        raise DataLoadError(f"Unknown block type '{name}' in {context}")


def parse_gas_kind(name: str, context: str) -> GasKind:
    try:
        return GasKind[name]
    except KeyError:
        raise DataLoadError(f"Unknown gas '{name}' in {context}")


def build_compatibility(partners: Dict[str, List[str]]) -> np.ndarray:
    """
    Build the symmetric compatibility matrix from per-type partner lists.

    A is compatible with B if B appears in A's list or A appears in B's list.

    Args:
        partners: {block_type_name: [partner_name, ...]}

    Returns:
        (NUM_BLOCK_TYPES, NUM_BLOCK_TYPES) bool matrix
    """
    matrix = np.zeros((NUM_BLOCK_TYPES, NUM_BLOCK_TYPES), dtype=bool)
    for name, partner_names in partners.items():
        a = parse_block_type(name, "compatibility table")
        for partner in partner_names or []:
            b = parse_block_type(partner, f"compatibility list of {name}")
            matrix[a, b] = True

    return matrix | matrix.T


def parse_archetype(data: dict) -> Archetype:
    """Parse a single archetype entry into an Archetype"""
    archetype_id = data['archetype_id']
    requires = {
        parse_block_type(name, f"recipe of {archetype_id}"): count
        for name, count in data['requires'].items()
    }

    return Archetype(
        archetype_id=archetype_id,
        name=data['name'],
        requires=composition_vector(requires),
        size=float(data['size']),
        max_speed=float(data['max_speed']),
        metabolism=float(data['metabolism']),
        starvation_time=float(data['starvation_time']),
        respiration=parse_gas_kind(data['respiration'], f"respiration of {archetype_id}"),
        production=(parse_gas_kind(data['production'], f"production of {archetype_id}")
                    if data.get('production') is not None else None),
        prey=list(data.get('prey', [])),
        can_hibernate=data.get('can_hibernate', True),
        color=data.get('color'),
        shape=data.get('shape'),
        description=data.get('description')
    )


def load_catalog(file_path: Path, schema_dir: Optional[Path] = None) -> Catalog:
    """Load block compatibility table and archetype recipes from YAML"""
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = schema_dir / "catalog.schema.json"
        validate_against_schema(data, schema_path, file_path)

    compatibility = build_compatibility(data['compatibility'])
    archetypes = [parse_archetype(a) for a in data['archetypes']]

    # Prey must reference archetypes in the same catalog
    known = {a.archetype_id for a in archetypes}
    if len(known) != len(archetypes):
        raise DataLoadError(f"Duplicate archetype_id in {file_path}")
    for archetype in archetypes:
        for prey_id in archetype.prey:
            if prey_id not in known:
                raise DataLoadError(
                    f"Archetype {archetype.archetype_id} preys on unknown archetype '{prey_id}'"
                )

    return Catalog(compatibility=compatibility, archetypes=archetypes)


def load_world(file_path: Path, schema_dir: Optional[Path] = None) -> World:
    """Load world configuration from YAML"""
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = schema_dir / "world.schema.json"
        validate_against_schema(data, schema_path, file_path)

    if data['width'] <= 0 or data['height'] <= 0:
        raise DataLoadError(f"World bounds must be positive in {file_path}")

    try:
        parameters = WorldParameters(**data.get('parameters', {}))
        simulation = SimulationConfig(**data.get('simulation', {}))
    except TypeError as e:
        raise DataLoadError(f"Unknown configuration key in {file_path}: {e}")

    return World(
        world_id=data['world_id'],
        name=data['name'],
        width=float(data['width']),
        height=float(data['height']),
        parameters=parameters,
        simulation=simulation,
        catalog_path=data['catalog'],
        seed=data.get('seed'),
        description=data.get('description')
    )


def load_all_data(
    data_root: Optional[Path] = None,
    schema_dir: Optional[Path] = None,
    world_file: Optional[Path] = None
) -> dict:
    """Load all simulation data from data directory

    Returns dict with keys: world, catalog
    """
    data_root = Path(data_root) if data_root is not None else DEFAULT_DATA_ROOT
    world_file = Path(world_file) if world_file is not None else DEFAULT_WORLD_FILE

    # Load world
    world = load_world(data_root / world_file, schema_dir)

    # Load catalog (referenced in world config)
    catalog = load_catalog(data_root / world.catalog_path, schema_dir)

    return {
        'world': world,
        'catalog': catalog
    }
