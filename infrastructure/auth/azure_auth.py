# ============================================================================
# AZURE AUTHENTICATION
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# PURPOSE: Service principal / default credential login for ARM and Kudu
# CREATED: 10 OCT 2026
# ============================================================================
"""
Azure authentication for the deployer.

The manifest names the environment variables holding the service principal:

    provider:
      subscriptionId: AZURE_SUBSCRIPTION_ID
      servicePrincipalTenantId: AZURE_TENANT_ID
      servicePrincipalClientId: AZURE_CLIENT_ID
      servicePrincipalPassword: AZURE_CLIENT_SECRET

Authentication Flow:
-------------------
1. resolve_service_principal() reads those variables
2. AzureSession builds ClientSecretCredential when tenant, client and secret
   are all present, DefaultAzureCredential otherwise (az login, MI)
3. get_token() returns an ARM bearer token, cached until 5 minutes
   before expiry; the same token is accepted by the Kudu endpoint

Each deployment owns its own AzureSession; nothing is cached globally.
"""

import asyncio
import os
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import ClientSecretCredential, DefaultAzureCredential

from core.config import get_defaults
from core.models import ProviderSettings

logger = logging.getLogger(__name__)

# Refresh tokens when less than 5 minutes until expiry
TOKEN_REFRESH_BUFFER_SECS = 300


class AzureAuthError(Exception):
    """Raised when credentials are missing or login fails."""
    pass


@dataclass(frozen=True)
class ServicePrincipal:
    """Resolved credential values (not env var names)."""
    subscription_id: str
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    @property
    def has_secret(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)


@dataclass
class TokenCache:
    """Simple in-memory token cache."""
    token: Optional[str] = None
    expires_at: Optional[datetime] = None

    def get_if_valid(self, min_ttl_seconds: int = 0) -> Optional[str]:
        """Get token if valid and has sufficient TTL."""
        if not self.token or not self.expires_at:
            return None
        remaining = (self.expires_at - datetime.now(timezone.utc)).total_seconds()
        if remaining <= min_ttl_seconds:
            return None
        return self.token

    def set(self, token: str, expires_at: datetime) -> None:
        self.token = token
        self.expires_at = expires_at

    def invalidate(self) -> None:
        self.token = None
        self.expires_at = None


def resolve_service_principal(
    provider: ProviderSettings,
    environ: Optional[Mapping[str, str]] = None,
) -> ServicePrincipal:
    """
    Read the service principal from the environment variables the manifest names.

    Raises:
        AzureAuthError: If the subscription id cannot be resolved
    """
    environ = os.environ if environ is None else environ

    def _lookup(var_name: Optional[str]) -> Optional[str]:
        if not var_name:
            return None
        return environ.get(var_name) or None

    subscription_id = _lookup(provider.subscription_id)
    if not subscription_id:
        raise AzureAuthError(
            f"Subscription id not set: provider.subscriptionId names "
            f"'{provider.subscription_id}', which is not in the environment"
        )

    return ServicePrincipal(
        subscription_id=subscription_id,
        tenant_id=_lookup(provider.tenant_id),
        client_id=_lookup(provider.client_id),
        client_secret=_lookup(provider.client_secret),
    )


class AzureSession:
    """
    Credential and token holder for one deployment.

    Usage:
        session = AzureSession(resolve_service_principal(manifest.provider))
        session.login()
        token = session.get_token()
        token = await session.get_token_async()  # from coroutines
    """

    def __init__(self, principal: ServicePrincipal, scope: Optional[str] = None):
        self.principal = principal
        self.scope = scope or get_defaults().deployment.management_scope
        self._credential: Optional[TokenCredential] = None
        self._token_cache = TokenCache()
        self._refresh_lock: Optional[asyncio.Lock] = None

    @property
    def subscription_id(self) -> str:
        return self.principal.subscription_id

    @property
    def credential(self) -> TokenCredential:
        """Azure credential (lazy initialization)."""
        if self._credential is None:
            if self.principal.has_secret:
                logger.info(
                    f"Using service principal: {self.principal.client_id[:8]}..."
                )
                self._credential = ClientSecretCredential(
                    tenant_id=self.principal.tenant_id,
                    client_id=self.principal.client_id,
                    client_secret=self.principal.client_secret,
                )
            else:
                logger.info("Using DefaultAzureCredential (az login or managed identity)")
                self._credential = DefaultAzureCredential()
        return self._credential

    def login(self) -> str:
        """
        Verify the credential by acquiring a token.

        Raises:
            AzureAuthError: If authentication fails
        """
        logger.info("Logging in to Azure")
        return self.get_token()

    def get_token(self) -> str:
        """Get an ARM bearer token, refreshing near expiry."""
        cached = self._token_cache.get_if_valid(min_ttl_seconds=TOKEN_REFRESH_BUFFER_SECS)
        if cached:
            return cached

        try:
            token_response = self.credential.get_token(self.scope)
        except ClientAuthenticationError as e:
            logger.error(f"Azure login failed: {e}")
            raise AzureAuthError(f"Azure login failed: {e}") from e

        expires_at = datetime.fromtimestamp(token_response.expires_on, tz=timezone.utc)
        self._token_cache.set(token_response.token, expires_at)
        logger.debug(f"ARM token acquired, expires: {expires_at.isoformat()}")
        return token_response.token

    async def get_token_async(self) -> str:
        """
        get_token() for coroutines.

        The credential call blocks on the network, so a refresh runs in a
        worker thread; concurrent callers share one refresh.
        """
        cached = self._token_cache.get_if_valid(min_ttl_seconds=TOKEN_REFRESH_BUFFER_SECS)
        if cached:
            return cached

        if self._refresh_lock is None:
            self._refresh_lock = asyncio.Lock()
        async with self._refresh_lock:
            return await asyncio.to_thread(self.get_token)

    def close(self) -> None:
        close = getattr(self._credential, "close", None)
        if close:
            close()
        self._token_cache.invalidate()
