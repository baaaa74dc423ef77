# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 07 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

- binding: catalog shapes (bindings.json) and resolved function.json content
- manifest: the serverless.yml service/function/event declarations
"""

from core.models.binding import (
    EnumOption,
    SettingSpec,
    BindingShape,
    BindingCatalog,
    ResolvedBinding,
    FunctionMetadata,
)
from core.models.manifest import (
    FunctionEvent,
    FunctionDefinition,
    ArmTemplateOverride,
    ProviderSettings,
    ServiceManifest,
)

__all__ = [
    # Catalog
    "EnumOption",
    "SettingSpec",
    "BindingShape",
    "BindingCatalog",
    # Resolution output
    "ResolvedBinding",
    "FunctionMetadata",
    # Manifest
    "FunctionEvent",
    "FunctionDefinition",
    "ArmTemplateOverride",
    "ProviderSettings",
    "ServiceManifest",
]
