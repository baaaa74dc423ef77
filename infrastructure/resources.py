# ============================================================================
# AZURE RESOURCE MANAGER
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Infrastructure - Resource group and ARM template deployment
# PURPOSE: Provision the resource group and Function App shell
# CREATED: 10 OCT 2026
# ============================================================================
"""
Azure Resource Manager Infrastructure

Wraps azure-mgmt-resource for the four control-plane calls a deployment
needs:

- create_resource_group: resource group create-or-update
- deploy_template: ARM template deployment (Incremental) for the Function App
- delete_deployment: remove the ARM deployment record
- delete_resource_group: remove everything

The Function App templates are bundled under infrastructure/templates/. A manifest can
replace it (provider.armTemplate.file) and add parameters
(provider.armTemplate.parameters); functionAppName, and gitUrl when set,
are always supplied.

Calls are synchronous; the orchestrator runs them in a worker thread.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from azure.core.exceptions import AzureError, HttpResponseError
from azure.mgmt.resource import ResourceManagementClient

from core.config import DeploymentDefaults, get_defaults
from core.models import ProviderSettings
from infrastructure.auth import AzureSession

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"


class ResourceProvisioningError(Exception):
    """Raised when an ARM control-plane call fails."""

    def __init__(self, operation: str, name: str, cause: Exception):
        self.operation = operation
        self.name = name
        self.cause = cause
        super().__init__(f"{operation} '{name}' failed: {cause}")


# ============================================================================
# TEMPLATE SELECTION
# ============================================================================

def _as_arm_parameter(value: Any) -> Dict[str, Any]:
    """ARM parameters are {"value": ...}; plain manifest values get wrapped."""
    if isinstance(value, dict) and ("value" in value or "reference" in value):
        return value
    return {"value": value}


def load_template(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def build_function_app_deployment(
    app_name: str,
    provider: ProviderSettings,
    service_path: Optional[Union[str, Path]] = None,
    defaults: Optional[DeploymentDefaults] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Select the ARM template and build its parameters.

    Args:
        app_name: Function App name
        provider: Manifest provider section
        service_path: Base directory for a user template path
        defaults: Deployment defaults

    Returns:
        (template, parameters)
    """
    defaults = defaults or get_defaults().deployment
    override = provider.arm_template

    if override and override.file:
        template_path = Path(override.file)
        if not template_path.is_absolute() and service_path:
            template_path = Path(service_path) / template_path
    elif provider.git_url:
        template_path = TEMPLATES_DIR / defaults.git_template_file
    else:
        template_path = TEMPLATES_DIR / defaults.template_file

    logger.debug(f"Using ARM template {template_path}")
    template = load_template(template_path)

    parameters: Dict[str, Any] = {"functionAppName": {"value": app_name}}
    if provider.git_url:
        parameters["gitUrl"] = {"value": provider.git_url}
    if override:
        for name, value in override.parameters.items():
            parameters[name] = _as_arm_parameter(value)

    return template, parameters


# ============================================================================
# RESOURCE MANAGER
# ============================================================================

class ResourceManager:
    """
    Resource group and template deployment operations for one subscription.

    Usage:
        manager = ResourceManager(session)
        manager.create_resource_group("my-app-rg", "West US")
        manager.deploy_template("my-app-rg", "my-app-rg-deployment", template, params)
    """

    def __init__(
        self,
        session: AzureSession,
        client: Optional[ResourceManagementClient] = None,
        defaults: Optional[DeploymentDefaults] = None,
    ):
        self.session = session
        self._client = client
        self.defaults = defaults or get_defaults().deployment

    @property
    def client(self) -> ResourceManagementClient:
        """ResourceManagementClient (lazy initialization)."""
        if self._client is None:
            self._client = ResourceManagementClient(
                self.session.credential, self.session.subscription_id
            )
        return self._client

    def create_resource_group(
        self,
        name: str,
        location: str,
        tags: Optional[Dict[str, str]] = None,
    ) -> Any:
        logger.info(f"Creating resource group: {name}")
        try:
            return self.client.resource_groups.create_or_update(
                name,
                {"location": location, "tags": tags or {}},
            )
        except AzureError as e:
            raise ResourceProvisioningError("Create resource group", name, e) from e

    def deploy_template(
        self,
        resource_group: str,
        deployment_name: str,
        template: Dict[str, Any],
        parameters: Dict[str, Any],
    ) -> Any:
        """Run an ARM deployment and wait for it to finish."""
        logger.info(f"Deploying template {deployment_name} to {resource_group}")
        deployment = {
            "properties": {
                "template": template,
                "parameters": parameters,
                "mode": self.defaults.deployment_mode,
            }
        }
        try:
            poller = self.client.deployments.begin_create_or_update(
                resource_group, deployment_name, deployment
            )
            return poller.result()
        except HttpResponseError as e:
            logger.error(f"Template deployment rejected: {e.message}")
            raise ResourceProvisioningError("Deploy template", deployment_name, e) from e
        except AzureError as e:
            raise ResourceProvisioningError("Deploy template", deployment_name, e) from e

    def delete_deployment(self, resource_group: str, deployment_name: str) -> None:
        logger.info(f"Deleting deployment: {deployment_name}")
        try:
            self.client.deployments.begin_delete(resource_group, deployment_name).result()
        except AzureError as e:
            raise ResourceProvisioningError("Delete deployment", deployment_name, e) from e

    def delete_resource_group(self, name: str) -> None:
        logger.info(f"Deleting resource group: {name}")
        try:
            self.client.resource_groups.begin_delete(name).result()
        except AzureError as e:
            raise ResourceProvisioningError("Delete resource group", name, e) from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


__all__ = [
    "TEMPLATES_DIR",
    "ResourceProvisioningError",
    "ResourceManager",
    "build_function_app_deployment",
    "load_template",
]
