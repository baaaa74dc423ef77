# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for binding resolution, Kudu access, deployment
# CREATED: 06 OCT 2026
# ============================================================================
"""
Configuration Defaults

Defaults for the resolver, the Kudu client and the deployment orchestrator.
Each group can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides via from_env()
- One lazily-built Defaults container per process
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class BindingDefaults:
    """
    Defaults used while resolving function bindings.

    Controls handler path derivation and the implicit storage connection.
    """
    # Handler "index.run" -> "index" + source_extension
    source_extension: str = ".js"
    # Handler without a module part is looked up in this file
    default_handler_file: str = "handler.js"
    # App setting holding the Function App's own storage connection string
    storage_connection_setting: str = "AzureWebJobsStorage"

    @classmethod
    def from_env(cls) -> "BindingDefaults":
        """Create from environment variables."""
        return cls(
            source_extension=os.getenv("DEPLOY_SOURCE_EXTENSION", ".js"),
            default_handler_file=os.getenv("DEPLOY_DEFAULT_HANDLER_FILE", "handler.js"),
            storage_connection_setting=os.getenv(
                "DEPLOY_STORAGE_CONNECTION_SETTING", "AzureWebJobsStorage"
            ),
        )


@dataclass(frozen=True)
class KuduDefaults:
    """
    Defaults for the Function App SCM (Kudu) endpoint.
    """
    scm_domain: str = ".scm.azurewebsites.net"
    app_domain: str = ".azurewebsites.net"

    # Seconds to wait after the ARM deployment before Kudu answers
    ready_wait_seconds: float = 10.0

    # httpx timeouts (seconds)
    connect_timeout: float = 30.0
    read_timeout: float = 120.0

    # Invocations fetched when looking for the latest one
    invocation_limit: int = 5

    @classmethod
    def from_env(cls) -> "KuduDefaults":
        """Create from environment variables."""
        return cls(
            ready_wait_seconds=float(os.getenv("KUDU_READY_WAIT_SECONDS", 10.0)),
            read_timeout=float(os.getenv("KUDU_TIMEOUT_SECONDS", 120.0)),
        )


@dataclass(frozen=True)
class DeploymentDefaults:
    """
    Defaults for resource naming and ARM deployment.
    """
    resource_group_suffix: str = "-rg"
    deployment_suffix: str = "-deployment"
    functions_folder: str = "functions"
    deployment_mode: str = "Incremental"

    # Bundled ARM templates (under infrastructure/templates/)
    template_file: str = "azuredeploy.json"
    git_template_file: str = "azuredeployWithGit.json"

    # Scope for ARM bearer tokens (also accepted by Kudu)
    management_scope: str = "https://management.azure.com/.default"

    @classmethod
    def from_env(cls) -> "DeploymentDefaults":
        """Create from environment variables."""
        return cls(
            functions_folder=os.getenv("DEPLOY_FUNCTIONS_FOLDER", "functions"),
            deployment_mode=os.getenv("DEPLOY_ARM_MODE", "Incremental"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    bindings: BindingDefaults = field(default_factory=BindingDefaults)
    kudu: KuduDefaults = field(default_factory=KuduDefaults)
    deployment: DeploymentDefaults = field(default_factory=DeploymentDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            bindings=BindingDefaults.from_env(),
            kudu=KuduDefaults.from_env(),
            deployment=DeploymentDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


__all__ = [
    "BindingDefaults",
    "KuduDefaults",
    "DeploymentDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
