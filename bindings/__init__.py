# ============================================================================
# BINDINGS MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Binding catalog and resolution engine
# PURPOSE: Resolve manifest events into function.json bindings
# CREATED: 07 OCT 2026
# ============================================================================
"""
Bindings Module

- catalog: bindings.json loader and lookup index
- resolver: per-function event -> binding resolution

Usage:
    from bindings import BindingResolver

    resolver = BindingResolver()
    metadata = resolver.resolve("hello", "index.run", events)
    metadata.to_packager_params()
"""

from bindings.catalog import (
    CatalogIndex,
    CatalogLoadError,
    load_catalog,
    build_index,
    get_catalog_index,
    reset_catalog_index,
)
from bindings.resolver import (
    BindingError,
    UnsupportedBindingError,
    MissingRequiredSettingError,
    BindingResolver,
    get_entry_point_and_handler_path,
    get_function_metadata,
)

__all__ = [
    # Catalog
    "CatalogIndex",
    "CatalogLoadError",
    "load_catalog",
    "build_index",
    "get_catalog_index",
    "reset_catalog_index",
    # Resolver
    "BindingError",
    "UnsupportedBindingError",
    "MissingRequiredSettingError",
    "BindingResolver",
    "get_entry_point_and_handler_path",
    "get_function_metadata",
]
