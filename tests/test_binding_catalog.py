# ============================================================================
# BINDING CATALOG TESTS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Tests - Catalog loading and lookup index
# PURPOSE: Verify bindings.json loads, validates and indexes correctly
# CREATED: 13 OCT 2026
# ============================================================================
"""
Binding Catalog Tests

Tests:
1. Bundled catalog loads and covers the supported binding types
2. Lookup tables share positions; unknown keys return -1
3. Direction variants: type lookup hits the first entry, display names reach the rest
4. Malformed or missing catalogs raise CatalogLoadError
5. Shared index is cached until reset

Run with:
    pytest tests/test_binding_catalog.py -v
"""

import json

import pytest

from bindings.catalog import (
    CATALOG_PATH,
    CatalogLoadError,
    build_index,
    get_catalog_index,
    load_catalog,
    reset_catalog_index,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(scope="module")
def index():
    return build_index(load_catalog())


def write_catalog(path, data):
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return path


# ============================================================================
# LOADING
# ============================================================================

class TestLoadCatalog:
    """Tests for load_catalog."""

    def test_bundled_catalog_loads(self):
        catalog = load_catalog()
        assert CATALOG_PATH.name == "bindings.json"
        assert len(catalog.bindings) > 10

    def test_bundled_catalog_covers_known_types(self, index):
        for binding_type in (
            "httpTrigger", "http", "timerTrigger", "queueTrigger", "queue",
            "blobTrigger", "blob", "table", "eventHubTrigger", "eventHub",
            "serviceBusTrigger", "serviceBus", "documentDB", "notificationHub",
        ):
            assert index.has_type(binding_type), binding_type

    def test_settings_parsed_with_aliases(self, index):
        settings = index.settings_at(index.index_of_type("httpTrigger"))
        by_name = {spec.name: spec for spec in settings}

        assert by_name["name"].required is True
        assert by_name["name"].default_value == "req"
        assert by_name["authLevel"].is_enum
        assert [opt.value for opt in by_name["authLevel"].enum] == [
            "function", "anonymous", "admin",
        ]

    def test_storage_resource_is_case_insensitive(self, index):
        settings = index.settings_at(index.index_of_type("queueTrigger"))
        connection = next(spec for spec in settings if spec.name == "connection")
        assert connection.resource == "Storage"
        assert connection.is_storage_resource

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogLoadError) as exc_info:
            load_catalog(tmp_path / "nope.json")
        assert "nope.json" in str(exc_info.value)

    def test_invalid_json(self, tmp_path):
        path = write_catalog(tmp_path / "bad.json", "{not json")
        with pytest.raises(CatalogLoadError, match="invalid JSON"):
            load_catalog(path)

    def test_empty_bindings_rejected(self, tmp_path):
        path = write_catalog(tmp_path / "empty.json", {"bindings": []})
        with pytest.raises(CatalogLoadError):
            load_catalog(path)

    def test_entry_without_display_name_rejected(self, tmp_path):
        path = write_catalog(
            tmp_path / "partial.json",
            {"bindings": [{"type": "queue", "settings": []}]},
        )
        with pytest.raises(CatalogLoadError):
            load_catalog(path)


# ============================================================================
# INDEX
# ============================================================================

class TestCatalogIndex:
    """Tests for the parallel lookup tables."""

    def test_tables_share_positions(self, index):
        n = len(index)
        assert len(index.display_names) == n
        assert len(index.types) == n
        assert len(index.settings) == n
        assert len(index.setting_names) == n

        position = index.index_of_type("timerTrigger")
        assert index.types[position] == "timerTrigger"
        assert index.display_names[position] == "$timertrigger_displayname"
        assert index.setting_names[position] == ("name", "schedule", "runOnStartup")

    def test_unknown_type(self, index):
        assert index.index_of_type("telepathy") == -1
        assert not index.has_type("telepathy")

    def test_type_lookup_is_case_sensitive(self, index):
        assert index.index_of_type("HTTPTRIGGER") == -1

    def test_display_name_lookup_is_case_insensitive(self, index):
        position = index.index_of_display_name("$blobIn_displayName")
        assert position >= 0
        assert index.index_of_display_name("$BLOBIN_DISPLAYNAME") == position

    def test_duplicate_type_maps_to_first_entry(self, index):
        first = index.index_of_type("blob")
        assert index.shape_at(first).display_name == "$blobOut_displayName"

        inbound = index.index_of_display_name("$blobin_displayname")
        assert inbound != first
        assert index.types[inbound] == "blob"

    def test_shape_at_out_of_range(self, index):
        with pytest.raises(IndexError):
            index.shape_at(-1)
        with pytest.raises(IndexError):
            index.settings_at(len(index))

    def test_index_is_immutable(self, index):
        with pytest.raises(Exception):
            index.types = ()


# ============================================================================
# SHARED INSTANCE
# ============================================================================

class TestSharedIndex:

    def setup_method(self):
        reset_catalog_index()

    def teardown_method(self):
        reset_catalog_index()

    def test_cached_until_reset(self):
        first = get_catalog_index()
        assert get_catalog_index() is first

        reset_catalog_index()
        assert get_catalog_index() is not first
