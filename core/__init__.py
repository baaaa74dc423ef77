# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core module initialization
# PURPOSE: Export contracts and models shared by every component
# CREATED: 06 OCT 2026
# ============================================================================

from core.contracts import BindingDirection, SettingValueKind, DeploymentPhase
from core.models import (
    BindingShape,
    SettingSpec,
    ResolvedBinding,
    FunctionMetadata,
    FunctionEvent,
    FunctionDefinition,
    ServiceManifest,
)

__all__ = [
    # Enums
    "BindingDirection",
    "SettingValueKind",
    "DeploymentPhase",
    # Models
    "BindingShape",
    "SettingSpec",
    "ResolvedBinding",
    "FunctionMetadata",
    "FunctionEvent",
    "FunctionDefinition",
    "ServiceManifest",
]
