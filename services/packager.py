# ============================================================================
# FUNCTION PACKAGER
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Service - Per-function folder and zip archive
# PURPOSE: Turn resolved FunctionMetadata into a deployable archive
# CREATED: 11 OCT 2026
# ============================================================================
"""
Function Packager

For each function:
1. Creates <service>/functions/<name>/
2. Copies the handler source to index<ext> (the host loads index.js)
3. Writes function.json: the resolved bindings plus entryPoint
4. Zips the folder so entries extract to wwwroot/<name>/<file>

Usage:
    packager = FunctionPackager(service_path)
    archive = await packager.package(
        "hello", metadata.entry_point, metadata.handler_path,
        metadata.to_packager_params()["params"],
    )
"""

import asyncio
import io
import json
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from core.config import get_defaults
from core.logging import ComponentType, get_logger, log_context
from core.models import FunctionMetadata

logger = get_logger(__name__, ComponentType.PACKAGER)

FUNCTION_JSON = "function.json"


class PackagingError(Exception):
    """Raised when a function cannot be packaged."""

    def __init__(self, function_name: str, reason: str):
        self.function_name = function_name
        self.reason = reason
        super().__init__(f"Cannot package function {function_name}: {reason}")


@dataclass
class FunctionArchive:
    """A packaged function, ready for upload."""
    function_name: str
    folder: Path
    archive: bytes
    files: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.archive)


class FunctionPackager:
    """Builds function folders and archives under one service directory."""

    def __init__(
        self,
        service_path: Union[str, Path],
        functions_folder: Optional[str] = None,
    ):
        self.service_path = Path(service_path)
        self.functions_dir = self.service_path / (
            functions_folder or get_defaults().deployment.functions_folder
        )

    async def package(
        self,
        function_name: str,
        entry_point: str,
        handler_path: str,
        params: Dict[str, Any],
    ) -> FunctionArchive:
        """Package one function without blocking the event loop."""
        return await asyncio.to_thread(
            self.package_sync, function_name, entry_point, handler_path, params
        )

    async def package_metadata(self, metadata: FunctionMetadata) -> FunctionArchive:
        contract = metadata.to_packager_params()
        return await self.package(
            metadata.function_name,
            contract["entryPoint"],
            contract["handlerPath"],
            contract["params"],
        )

    def package_sync(
        self,
        function_name: str,
        entry_point: str,
        handler_path: str,
        params: Dict[str, Any],
    ) -> FunctionArchive:
        """
        Write the function folder and build its archive.

        Args:
            function_name: Function (and folder) name
            entry_point: Exported symbol the host calls
            handler_path: Handler source, relative to the service directory
            params: {"functionsJson": {"disabled": ..., "bindings": [...]}}

        Returns:
            FunctionArchive

        Raises:
            PackagingError: Missing handler source, bad params or I/O failure
        """
        with log_context(function_name=function_name, phase="package"):
            logger.info(f"Packaging function: {function_name}")

            if "functionsJson" not in params:
                raise PackagingError(function_name, "params has no functionsJson")

            source = self.service_path / handler_path
            if not source.is_file():
                raise PackagingError(function_name, f"handler source not found: {source}")

            folder = self.functions_dir / function_name
            function_json = {**params["functionsJson"], "entryPoint": entry_point}
            target_name = "index" + (source.suffix or get_defaults().bindings.source_extension)

            # Serialize first: an unserializable value must not leave a partial function.json
            try:
                content = json.dumps(function_json, indent=4)
            except (TypeError, ValueError) as e:
                raise PackagingError(function_name, f"function.json is not serializable: {e}") from e

            try:
                folder.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, folder / target_name)
                (folder / FUNCTION_JSON).write_text(content, encoding="utf-8")
                archive, files = self._zip_folder(folder, function_name)
            except OSError as e:
                raise PackagingError(function_name, str(e)) from e

            packaged = FunctionArchive(
                function_name=function_name,
                folder=folder,
                archive=archive,
                files=files,
            )
            logger.debug(f"Packaged {len(files)} files ({packaged.size} bytes)")
            return packaged

    @staticmethod
    def _zip_folder(folder: Path, function_name: str):
        files = sorted(p.name for p in folder.iterdir() if p.is_file())
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name in files:
                zf.write(folder / name, f"{function_name}/{name}")
        return buffer.getvalue(), files


__all__ = [
    "FUNCTION_JSON",
    "PackagingError",
    "FunctionArchive",
    "FunctionPackager",
]
