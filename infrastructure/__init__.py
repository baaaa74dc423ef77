# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Infrastructure - Azure control plane and SCM access
# PURPOSE: Resource group, ARM template and Kudu operations
# CREATED: 10 OCT 2026
# ============================================================================
"""
Infrastructure module for the deployer.

Provides:
- AzureSession: Credential and ARM token for one deployment
- ResourceManager: Resource group and ARM template deployment
- KuduClient: Function list, zip upload, invocation and logs over SCM

Usage:
    from infrastructure import AzureSession, ResourceManager, KuduClient

    session = AzureSession(resolve_service_principal(manifest.provider))
    manager = ResourceManager(session)
    manager.create_resource_group("my-app-rg", "West US")

    async with KuduClient("my-app", session.get_token_async) as kudu:
        await kudu.upload_zip("hello", archive)
"""

from infrastructure.auth import (
    AzureAuthError,
    AzureSession,
    ServicePrincipal,
    resolve_service_principal,
)
from infrastructure.kudu import KuduClient, KuduError
from infrastructure.resources import (
    ResourceManager,
    ResourceProvisioningError,
    build_function_app_deployment,
)

__all__ = [
    # Auth
    "AzureAuthError",
    "AzureSession",
    "ServicePrincipal",
    "resolve_service_principal",
    # Kudu
    "KuduClient",
    "KuduError",
    # ARM
    "ResourceManager",
    "ResourceProvisioningError",
    "build_function_app_deployment",
]
