# ============================================================================
# BINDING CATALOG
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Catalog loading and lookup index
# PURPOSE: Load bindings.json once and index it for the resolver
# CREATED: 07 OCT 2026
# ============================================================================
"""
Binding Catalog

bindings.json describes every binding shape the Functions host supports:
its type, display name and ordered settings (required flags, defaults,
enums, resource kinds).

The CatalogIndex holds parallel lookup tables sharing one integer position
per catalog entry:

    display_names[i]   lower-cased display name ("$blobin_displayname")
    types[i]           binding type ("blob")
    settings[i]        ordered SettingSpec tuple
    setting_names[i]   ordered setting names

Lookups return -1 when nothing matches. A type that appears more than once
(direction variants) resolves to its first entry; the other variants are
reached through their direction-qualified display name.

The index is built once per process and never mutated, so concurrent
resolutions can share it without locking.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from pydantic import ValidationError

from core.models import BindingCatalog, BindingShape, SettingSpec

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent / "bindings.json"


class CatalogLoadError(Exception):
    """Raised when the binding catalog is missing or malformed."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot load binding catalog {self.path}: {reason}")


# ============================================================================
# LOADER
# ============================================================================

def load_catalog(path: Optional[Union[str, Path]] = None) -> BindingCatalog:
    """
    Load and validate the binding catalog.

    Args:
        path: Catalog file. Defaults to bindings.json next to this module.

    Returns:
        BindingCatalog

    Raises:
        CatalogLoadError: If the file is unreadable or fails validation
    """
    catalog_path = Path(path) if path else CATALOG_PATH
    logger.info(f"Parsing Azure Functions bindings catalog: {catalog_path.name}")

    try:
        with open(catalog_path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise CatalogLoadError(catalog_path, str(e)) from e
    except json.JSONDecodeError as e:
        raise CatalogLoadError(catalog_path, f"invalid JSON: {e}") from e

    try:
        return BindingCatalog.model_validate(data)
    except ValidationError as e:
        raise CatalogLoadError(catalog_path, str(e)) from e


# ============================================================================
# INDEX
# ============================================================================

@dataclass(frozen=True)
class CatalogIndex:
    """Read-only lookup tables over a BindingCatalog."""
    shapes: Tuple[BindingShape, ...]
    display_names: Tuple[str, ...]
    types: Tuple[str, ...]
    settings: Tuple[Tuple[SettingSpec, ...], ...]
    setting_names: Tuple[Tuple[str, ...], ...]
    _type_positions: Dict[str, int] = field(default_factory=dict, repr=False)
    _display_name_positions: Dict[str, int] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        return len(self.shapes)

    def index_of_type(self, binding_type: str) -> int:
        """Position of the first entry with this type, or -1."""
        return self._type_positions.get(binding_type, -1)

    def index_of_display_name(self, display_name: str) -> int:
        """Position of the entry with this display name (case-insensitive), or -1."""
        return self._display_name_positions.get(display_name.lower(), -1)

    def shape_at(self, index: int) -> BindingShape:
        if index < 0 or index >= len(self.shapes):
            raise IndexError(f"No catalog entry at position {index}")
        return self.shapes[index]

    def settings_at(self, index: int) -> Tuple[SettingSpec, ...]:
        self.shape_at(index)
        return self.settings[index]

    def setting_names_at(self, index: int) -> Tuple[str, ...]:
        self.shape_at(index)
        return self.setting_names[index]

    def has_type(self, binding_type: str) -> bool:
        return binding_type in self._type_positions


def build_index(catalog: BindingCatalog) -> CatalogIndex:
    """
    Build the lookup tables for a catalog.

    Args:
        catalog: Validated BindingCatalog

    Returns:
        CatalogIndex
    """
    type_positions: Dict[str, int] = {}
    display_name_positions: Dict[str, int] = {}

    for position, shape in enumerate(catalog.bindings):
        # First occurrence wins for both tables
        type_positions.setdefault(shape.type, position)
        display_name_positions.setdefault(shape.display_name.lower(), position)

    index = CatalogIndex(
        shapes=tuple(catalog.bindings),
        display_names=tuple(shape.display_name.lower() for shape in catalog.bindings),
        types=tuple(shape.type for shape in catalog.bindings),
        settings=tuple(tuple(shape.settings) for shape in catalog.bindings),
        setting_names=tuple(tuple(shape.setting_names) for shape in catalog.bindings),
        _type_positions=type_positions,
        _display_name_positions=display_name_positions,
    )
    logger.debug(f"Indexed {len(index)} binding shapes ({len(type_positions)} types)")
    return index


# ============================================================================
# SHARED INSTANCE
# ============================================================================

_index: Optional[CatalogIndex] = None


def get_catalog_index() -> CatalogIndex:
    """Get the process-wide index over the bundled catalog."""
    global _index
    if _index is None:
        _index = build_index(load_catalog())
    return _index


def reset_catalog_index() -> None:
    """Drop the cached index (for testing)."""
    global _index
    _index = None


__all__ = [
    "CATALOG_PATH",
    "CatalogLoadError",
    "CatalogIndex",
    "load_catalog",
    "build_index",
    "get_catalog_index",
    "reset_catalog_index",
]
