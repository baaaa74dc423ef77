# ============================================================================
# BINDING MODELS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core model - Binding catalog shapes and resolved bindings
# PURPOSE: Typed view of bindings.json and of generated function.json content
# CREATED: 07 OCT 2026
# EXPORTS: EnumOption, SettingSpec, BindingShape, ResolvedBinding, FunctionMetadata
# DEPENDENCIES: pydantic
# ============================================================================
"""
Binding Models

Two sides of the same schema:

- BindingShape / SettingSpec: the catalog TEMPLATE, loaded once from
  bindings.json. Field aliases match the camelCase catalog keys.
- ResolvedBinding / FunctionMetadata: the INSTANCE produced for one
  function, serialized into the function.json the Functions host reads.

Catalog models are frozen; they are shared read-only across every
resolution in a deployment run.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from core.contracts import (
    BindingDirection,
    SettingValueKind,
    STORAGE_RESOURCE,
)


# ============================================================================
# CATALOG (TEMPLATE)
# ============================================================================

class EnumOption(BaseModel):
    """One allowed value of an enum setting."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    value: Any
    display: Optional[str] = None


class SettingSpec(BaseModel):
    """
    Schema of one setting of a binding shape.

    `value` is the value kind ("string", "enum", ...). Unknown kinds are
    accepted as plain strings; only "enum" affects resolution.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1)
    value: str = Field(default=SettingValueKind.STRING.value)
    required: bool = False
    default_value: Optional[Any] = Field(default=None, alias="defaultValue")
    resource: Optional[str] = None
    enum: List[EnumOption] = Field(default_factory=list)
    label: Optional[str] = None

    @property
    def is_enum(self) -> bool:
        return self.value == SettingValueKind.ENUM.value

    @property
    def is_storage_resource(self) -> bool:
        return bool(self.resource) and self.resource.lower() == STORAGE_RESOURCE

    @property
    def has_default(self) -> bool:
        return is_supplied(self.default_value)


class BindingShape(BaseModel):
    """
    Catalog entry for one binding type.

    Direction variants of the same type share `type` and differ in
    `display_name` (e.g. "$blobIn_displayName" / "$blobOut_displayName").
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    type: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1, alias="displayName")
    direction: Optional[BindingDirection] = None
    settings: List[SettingSpec] = Field(default_factory=list)

    @property
    def setting_names(self) -> List[str]:
        return [spec.name for spec in self.settings]


class BindingCatalog(BaseModel):
    """Root of bindings.json."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    bindings: List[BindingShape] = Field(..., min_length=1)


# ============================================================================
# RESOLUTION OUTPUT (INSTANCE)
# ============================================================================

class ResolvedBinding(BaseModel):
    """
    A fully-populated binding descriptor.

    `settings` keeps catalog order so serialized function.json files are
    stable across runs.
    """
    type: str
    direction: BindingDirection
    settings: Dict[str, Any] = Field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.settings.get(name, default)

    def to_function_json(self) -> Dict[str, Any]:
        """Flatten into the function.json binding object."""
        binding: Dict[str, Any] = {
            "type": self.type,
            "direction": self.direction.value,
        }
        for name, value in self.settings.items():
            if name not in binding:
                binding[name] = value
        return binding


class FunctionMetadata(BaseModel):
    """
    Everything the packager needs for one function.

    Built per function per deploy; never persisted.
    """
    function_name: str
    entry_point: str
    handler_path: str
    bindings: List[ResolvedBinding] = Field(default_factory=list)

    def functions_json(self) -> Dict[str, Any]:
        """Content of function.json (without entryPoint, added by the packager)."""
        return {
            "disabled": False,
            "bindings": [binding.to_function_json() for binding in self.bindings],
        }

    def to_packager_params(self) -> Dict[str, Any]:
        """
        Serialize to the packager contract:
            {entryPoint, handlerPath, params: {functionsJson: {...}}}
        """
        return {
            "entryPoint": self.entry_point,
            "handlerPath": self.handler_path,
            "params": {"functionsJson": self.functions_json()},
        }


def is_supplied(value: Any) -> bool:
    """None and empty strings count as "not supplied"; False and 0 do not."""
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


__all__ = [
    "EnumOption",
    "SettingSpec",
    "BindingShape",
    "BindingCatalog",
    "ResolvedBinding",
    "FunctionMetadata",
    "is_supplied",
]
