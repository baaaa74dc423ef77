# ============================================================================
# SERVICE MANIFEST MODELS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core model - Declarative service/function/event manifest
# PURPOSE: Typed view of serverless.yml
# CREATED: 07 OCT 2026
# EXPORTS: FunctionEvent, FunctionDefinition, ProviderSettings, ArmTemplateOverride, ServiceManifest
# DEPENDENCIES: pydantic
# ============================================================================
"""
Service Manifest Models

The manifest declares one Function App (the "service") and its functions:

    service: my-app
    provider:
      name: azure
      location: West US
      subscriptionId: AZURE_SUBSCRIPTION_ID      # env var NAME, not the value
      servicePrincipalTenantId: AZURE_TENANT_ID
      servicePrincipalClientId: AZURE_CLIENT_ID
      servicePrincipalPassword: AZURE_CLIENT_SECRET
    functions:
      hello:
        handler: index.hello
        events:
          - http: true
            x-azure-settings:
              authLevel: anonymous
          - queue: out-queue

Events are order-significant: the first one is the function's trigger.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.contracts import AZURE_SETTINGS_KEY


class FunctionEvent(BaseModel):
    """
    One declared trigger/binding of a function.

    kind: the event key (catalog type before trigger suffixing)
    value: the value under the event key ("http: true" -> True)
    azure_settings: the x-azure-settings mapping
    fields: every other key of the raw event (shorthands such as `queue`)
    """
    kind: str = Field(..., min_length=1)
    value: Any = None
    azure_settings: Dict[str, Any] = Field(default_factory=dict)
    fields: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "FunctionEvent":
        """
        Parse a manifest event mapping.

        The kind is the first key that is not x-azure-settings.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Event must be a mapping, got {type(raw).__name__}")

        keys = [key for key in raw if key != AZURE_SETTINGS_KEY]
        if not keys:
            raise ValueError(f"Event has no binding kind: {raw}")

        settings = raw.get(AZURE_SETTINGS_KEY) or {}
        if not isinstance(settings, dict):
            raise ValueError(f"{AZURE_SETTINGS_KEY} must be a mapping")

        kind = keys[0]
        return cls(
            kind=kind,
            value=raw[kind],
            azure_settings=dict(settings),
            fields={key: raw[key] for key in keys},
        )

    def shorthand(self, key: str) -> Any:
        """Get a shorthand field of the raw event (e.g. `queue`)."""
        return self.fields.get(key)


class FunctionDefinition(BaseModel):
    """A function: its handler reference and ordered events."""
    handler: str = Field(..., min_length=1)
    events: List[FunctionEvent] = Field(default_factory=list)

    @field_validator("events", mode="before")
    @classmethod
    def parse_raw_events(cls, v):
        """Accept raw manifest mappings as well as FunctionEvent instances."""
        if v is None:
            return []
        parsed = []
        for item in v:
            if isinstance(item, dict) and "kind" not in item:
                parsed.append(FunctionEvent.from_raw(item))
            else:
                parsed.append(item)
        return parsed


class ArmTemplateOverride(BaseModel):
    """User-supplied ARM template and extra parameters."""
    file: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ProviderSettings(BaseModel):
    """
    The provider section.

    Credential fields hold environment variable NAMES; the values are read
    from the environment at login time.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = "azure"
    location: str = "West US"
    subscription_id: Optional[str] = Field(default=None, alias="subscriptionId")
    tenant_id: Optional[str] = Field(default=None, alias="servicePrincipalTenantId")
    client_id: Optional[str] = Field(default=None, alias="servicePrincipalClientId")
    client_secret: Optional[str] = Field(default=None, alias="servicePrincipalPassword")
    git_url: Optional[str] = Field(default=None, alias="gitUrl")
    arm_template: Optional[ArmTemplateOverride] = Field(default=None, alias="armTemplate")

    @field_validator("name")
    @classmethod
    def require_azure(cls, v: str) -> str:
        if v != "azure":
            raise ValueError(f"Unsupported provider '{v}' (expected 'azure')")
        return v


class ServiceManifest(BaseModel):
    """
    Complete service manifest.

    `functions` preserves declaration order.
    """
    service: str = Field(..., min_length=1, max_length=60)
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    functions: Dict[str, FunctionDefinition] = Field(default_factory=dict)

    # Directory the manifest was loaded from; handler paths are relative to it
    service_path: Optional[str] = None

    def get_function(self, name: str) -> FunctionDefinition:
        """Get a function definition by name."""
        if name not in self.functions:
            raise KeyError(f"Function '{name}' not found in service '{self.service}'")
        return self.functions[name]

    def function_names(self) -> List[str]:
        return list(self.functions.keys())


__all__ = [
    "FunctionEvent",
    "FunctionDefinition",
    "ArmTemplateOverride",
    "ProviderSettings",
    "ServiceManifest",
]
