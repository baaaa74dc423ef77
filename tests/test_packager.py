# ============================================================================
# FUNCTION PACKAGER TESTS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Tests - Function folder and archive
# PURPOSE: Verify function.json content, handler copy and zip layout
# CREATED: 14 OCT 2026
# ============================================================================
"""
Function Packager Tests

Run with:
    pytest tests/test_packager.py -v
"""

import asyncio
import io
import json
import zipfile
from datetime import date

import pytest

from core.models import FunctionMetadata, ResolvedBinding
from services.packager import FunctionPackager, PackagingError


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def service_dir(tmp_path):
    (tmp_path / "index.js").write_text("module.exports.run = function (context) {};\n")
    return tmp_path


@pytest.fixture
def metadata():
    return FunctionMetadata(
        function_name="hello",
        entry_point="run",
        handler_path="index.js",
        bindings=[
            ResolvedBinding(type="httpTrigger", direction="in", settings={"name": "req"}),
            ResolvedBinding(type="http", direction="out", settings={"name": "$return"}),
        ],
    )


def archive_entries(archive_bytes):
    with zipfile.ZipFile(io.BytesIO(archive_bytes)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


# ============================================================================
# TESTS
# ============================================================================

class TestPackageFunction:

    def test_writes_function_folder(self, service_dir, metadata):
        packager = FunctionPackager(service_dir)
        archive = asyncio.run(packager.package_metadata(metadata))

        folder = service_dir / "functions" / "hello"
        assert archive.folder == folder
        assert (folder / "index.js").read_text() == (service_dir / "index.js").read_text()

        function_json = json.loads((folder / "function.json").read_text())
        assert function_json == {
            "disabled": False,
            "bindings": [
                {"type": "httpTrigger", "direction": "in", "name": "req"},
                {"type": "http", "direction": "out", "name": "$return"},
            ],
            "entryPoint": "run",
        }

    def test_function_json_indented_four_spaces(self, service_dir, metadata):
        FunctionPackager(service_dir).package_sync(
            "hello", "run", "index.js", metadata.to_packager_params()["params"]
        )
        text = (service_dir / "functions" / "hello" / "function.json").read_text()
        assert '\n    "disabled": false' in text

    def test_archive_layout(self, service_dir, metadata):
        archive = asyncio.run(FunctionPackager(service_dir).package_metadata(metadata))

        entries = archive_entries(archive.archive)
        assert sorted(entries) == ["hello/function.json", "hello/index.js"]
        assert archive.files == ["function.json", "index.js"]
        assert json.loads(entries["hello/function.json"])["entryPoint"] == "run"
        assert archive.size == len(archive.archive)

    def test_handler_in_subdirectory_becomes_index(self, service_dir):
        (service_dir / "src").mkdir()
        (service_dir / "src" / "app.js").write_text("exports.main = () => {};\n")

        archive = FunctionPackager(service_dir).package_sync(
            "app", "main", "src/app.js", {"functionsJson": {"disabled": False, "bindings": []}}
        )
        assert "index.js" in archive.files

    def test_custom_functions_folder(self, service_dir, metadata):
        packager = FunctionPackager(service_dir, functions_folder=".build")
        archive = asyncio.run(packager.package_metadata(metadata))
        assert archive.folder == service_dir / ".build" / "hello"

    def test_repackaging_overwrites(self, service_dir, metadata):
        packager = FunctionPackager(service_dir)
        packager.package_sync("hello", "run", "index.js", metadata.to_packager_params()["params"])
        packager.package_sync("hello", "main", "index.js", metadata.to_packager_params()["params"])

        function_json = json.loads(
            (service_dir / "functions" / "hello" / "function.json").read_text()
        )
        assert function_json["entryPoint"] == "main"


class TestPackagingErrors:

    def test_missing_handler_source(self, tmp_path, metadata):
        with pytest.raises(PackagingError) as exc_info:
            asyncio.run(FunctionPackager(tmp_path).package_metadata(metadata))
        assert exc_info.value.function_name == "hello"
        assert "index.js" in str(exc_info.value)

    def test_params_without_functions_json(self, service_dir):
        with pytest.raises(PackagingError, match="functionsJson"):
            FunctionPackager(service_dir).package_sync("hello", "run", "index.js", {})

    def test_unserializable_setting_leaves_no_function_json(self, service_dir):
        # YAML turns an unquoted 2024-01-01 into a date
        params = {
            "functionsJson": {
                "disabled": False,
                "bindings": [{"type": "cosmosDB", "partitionKey": date(2024, 1, 1)}],
            }
        }

        with pytest.raises(PackagingError, match="not serializable"):
            FunctionPackager(service_dir).package_sync("hello", "run", "index.js", params)
        assert not (service_dir / "functions" / "hello" / "function.json").exists()
