# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 06 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the deployer.
"""

from core.config.defaults import (
    BindingDefaults,
    KuduDefaults,
    DeploymentDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "BindingDefaults",
    "KuduDefaults",
    "DeploymentDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
