# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Manifest and packaging services
# PURPOSE: Load the service manifest and package functions
# CREATED: 09 OCT 2026
# ============================================================================
"""
Services Module

Usage:
    from services import ManifestService, FunctionPackager

    manifest = ManifestService("./my-service").load()
    packager = FunctionPackager(manifest.service_path)
"""

from .manifest_service import ManifestError, ManifestService, parse_manifest
from .packager import FunctionArchive, FunctionPackager, PackagingError
from .templates import TemplateContext, TemplateResolutionError, TemplateResolver

__all__ = [
    "ManifestError",
    "ManifestService",
    "parse_manifest",
    "FunctionArchive",
    "FunctionPackager",
    "PackagingError",
    "TemplateContext",
    "TemplateResolutionError",
    "TemplateResolver",
]
