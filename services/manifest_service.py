# ============================================================================
# MANIFEST SERVICE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Service - Service manifest loading
# PURPOSE: Load serverless.yml into a validated ServiceManifest
# CREATED: 09 OCT 2026
# ============================================================================
"""
Manifest Service

Loads the service manifest (serverless.yml) from a service directory,
resolves {{ }} template expressions, and validates it into a
ServiceManifest. Caches the loaded manifest.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from core.models import ServiceManifest
from services.templates import (
    TemplateContext,
    TemplateResolutionError,
    get_resolver,
)

logger = logging.getLogger(__name__)

MANIFEST_FILENAMES = ("serverless.yml", "serverless.yaml")


class ManifestError(Exception):
    """Raised when the manifest cannot be loaded or is invalid."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid manifest {self.path}: {reason}")


class ManifestService:
    """Service for loading the manifest of one service directory."""

    def __init__(
        self,
        service_path: Optional[Union[str, Path]] = None,
        options: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize manifest service.

        Args:
            service_path: Directory containing serverless.yml (defaults to cwd)
            options: Command line options exposed to templates as {{ opt.* }}
        """
        self.service_path = Path(service_path) if service_path else Path.cwd()
        self.options = options or {}
        self._manifest: Optional[ServiceManifest] = None

    def find_manifest(self) -> Path:
        """
        Locate the manifest file in the service directory.

        Raises:
            ManifestError: If no manifest file exists
        """
        for filename in MANIFEST_FILENAMES:
            candidate = self.service_path / filename
            if candidate.exists():
                return candidate
        raise ManifestError(
            self.service_path,
            f"none of {', '.join(MANIFEST_FILENAMES)} found",
        )

    def load(self) -> ServiceManifest:
        """
        Load (or return the cached) manifest.

        Returns:
            ServiceManifest

        Raises:
            ManifestError: Unreadable YAML, unresolved template or failed validation
        """
        if self._manifest is None:
            self._manifest = self._load_yaml(self.find_manifest())
            logger.info(
                f"Loaded service '{self._manifest.service}' with "
                f"{len(self._manifest.functions)} functions"
            )
        return self._manifest

    def function_names(self) -> List[str]:
        return self.load().function_names()

    def reload(self) -> ServiceManifest:
        """Reload the manifest from disk."""
        self._manifest = None
        return self.load()

    def _load_yaml(self, path: Path) -> ServiceManifest:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ManifestError(path, str(e)) from e
        except yaml.YAMLError as e:
            raise ManifestError(path, f"invalid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ManifestError(path, "top level must be a mapping")

        resolver = get_resolver()
        if resolver.has_templates(data):
            context = TemplateContext(options=self.options, manifest=data)
            try:
                data = resolver.resolve(data, context)
            except TemplateResolutionError as e:
                raise ManifestError(path, str(e)) from e
        else:
            logger.debug(f"No template expressions in {path.name}")

        # `functions: {name: null}` is a function with no settings at all
        functions = data.get("functions") or {}
        data["functions"] = {name: body or {} for name, body in functions.items()}
        data["service_path"] = str(path.parent)

        try:
            return parse_manifest(data)
        except ValidationError as e:
            raise ManifestError(path, str(e)) from e


def parse_manifest(data: Dict[str, Any]) -> ServiceManifest:
    """Validate an already-loaded manifest mapping."""
    service = data.get("service")
    # serverless.yml allows `service: {name: ...}`
    if isinstance(service, dict):
        data = {**data, "service": service.get("name")}
    return ServiceManifest.model_validate(data)


__all__ = [
    "MANIFEST_FILENAMES",
    "ManifestError",
    "ManifestService",
    "parse_manifest",
]
