# ============================================================================
# AUTHENTICATION MODULE
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# PURPOSE: Azure authentication for ARM and Kudu calls
# CREATED: 10 OCT 2026
# ============================================================================
"""
Authentication module for the deployer.

Usage:
    from infrastructure.auth import AzureSession, resolve_service_principal

    session = AzureSession(resolve_service_principal(manifest.provider))
    token = session.login()
"""

from infrastructure.auth.azure_auth import (
    AzureAuthError,
    AzureSession,
    ServicePrincipal,
    TokenCache,
    resolve_service_principal,
)

__all__ = [
    'AzureAuthError',
    'AzureSession',
    'ServicePrincipal',
    'TokenCache',
    'resolve_service_principal',
]
