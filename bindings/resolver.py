# ============================================================================
# BINDING RESOLVER
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Core - Event to function.json binding resolution
# PURPOSE: Turn a function's declared events into validated binding descriptors
# CREATED: 08 OCT 2026
# ============================================================================
"""
Binding Resolver

For one function, walks its events in declaration order and produces the
bindings of its function.json, plus the entry point and handler path.

Per event:
1. Lookup key = event kind, suffixed with "Trigger" for the first event only
2. Key must exist in the catalog type table
3. An x-azure-settings `direction` re-resolves the shape through its
   direction-qualified display name ("$" + key + direction + "_displayName")
4. Queue shorthand: `queue: name` becomes the queueName setting
5. User settings the shape does not declare are dropped (and logged)
6. Each catalog setting is filled from: user value, required default,
   the app's storage connection (storage resources), first enum option.
   A required setting with none of these fails the function.

After the loop, a lone HTTP trigger gets a synthesized HTTP output binding.

Resolution is a single pass with no I/O. Any error aborts the whole
function; partial metadata is never returned.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.config import BindingDefaults, get_defaults
from core.contracts import (
    BindingDirection,
    TRIGGER_SUFFIX,
    HTTP_TRIGGER_TYPE,
    HTTP_OUTPUT_TYPE,
    DIRECTION_SETTING,
    WEBHOOK_TYPE_SETTING,
    QUEUE_NAME_SETTING,
    QUEUE_SHORTHAND_KEY,
    HTTP_RETURN_NAME,
    HTTP_WEBHOOK_RETURN_NAME,
)
from core.logging import ComponentType, get_logger, log_context
from core.models import (
    FunctionDefinition,
    FunctionEvent,
    FunctionMetadata,
    ResolvedBinding,
    ServiceManifest,
    SettingSpec,
)
from core.models.binding import is_supplied
from bindings.catalog import CatalogIndex, get_catalog_index

logger = get_logger(__name__, ComponentType.RESOLVER)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class BindingError(Exception):
    """Base exception for binding resolution errors."""
    pass


class UnsupportedBindingError(BindingError):
    """Raised when an event kind (or its direction variant) has no catalog entry."""

    def __init__(self, binding_type: str, direction: Optional[str] = None):
        self.binding_type = binding_type
        self.direction = direction
        if direction:
            message = f"Binding {binding_type} with direction '{direction}' not supported"
        else:
            message = f"Binding {binding_type} not supported"
        super().__init__(message)


class MissingRequiredSettingError(BindingError):
    """Raised when a required setting has no value, default or implicit default."""

    def __init__(self, setting: str, binding_type: str):
        self.setting = setting
        self.binding_type = binding_type
        super().__init__(
            f"Required property {setting} is missing for binding: {binding_type}"
        )


# ============================================================================
# HANDLER PARSING
# ============================================================================

def get_entry_point_and_handler_path(
    handler: str,
    defaults: Optional[BindingDefaults] = None,
) -> Tuple[str, str]:
    """
    Split a handler reference into (entry_point, handler_path).

    "index.run"        -> ("run", "index.js")
    "src/app.main.run" -> ("run", "src/app.main.js")
    "handler"          -> ("handler", "handler.js")
    """
    defaults = defaults or get_defaults().bindings
    module, dot, symbol = handler.rpartition(".")
    if not dot:
        return handler, defaults.default_handler_file
    return symbol, module + defaults.source_extension


# ============================================================================
# SHAPE LOOKUP
# ============================================================================

def lookup_key(event: FunctionEvent, position: int) -> str:
    """Catalog type to look up: the first event is always the trigger."""
    if position == 0:
        return event.kind + TRIGGER_SUFFIX
    return event.kind


def direction_display_name(binding_type: str, direction: str) -> str:
    return f"${binding_type}{direction}_displayName".lower()


def resolve_shape_index(
    index: CatalogIndex,
    binding_type: str,
    direction: Optional[str] = None,
) -> int:
    """
    Find the catalog position for a binding type, honouring a direction override.

    Returns the position; never mutates the index.

    Raises:
        UnsupportedBindingError: If the type or its direction variant is unknown
    """
    if not index.has_type(binding_type):
        raise UnsupportedBindingError(binding_type)

    if direction is None:
        return index.index_of_type(binding_type)

    if direction not in (BindingDirection.IN.value, BindingDirection.OUT.value):
        raise UnsupportedBindingError(binding_type, direction)

    position = index.index_of_display_name(direction_display_name(binding_type, direction))
    if position < 0:
        raise UnsupportedBindingError(binding_type, direction)
    return position


# ============================================================================
# BINDING CONSTRUCTION
# ============================================================================

def build_binding(
    binding_type: str,
    settings: Sequence[SettingSpec],
    user_settings: Dict[str, Any],
    storage_connection_setting: str,
) -> ResolvedBinding:
    """
    Fill every catalog setting of one binding.

    Args:
        binding_type: Lookup key (becomes the binding's type)
        settings: Ordered catalog settings of the resolved shape
        user_settings: Recognized user values, plus any direction override
        storage_connection_setting: App setting used for storage connections

    Returns:
        ResolvedBinding with settings in catalog order

    Raises:
        MissingRequiredSettingError: If a required setting cannot be filled
    """
    override = user_settings.get(DIRECTION_SETTING)
    if is_supplied(override):
        direction = BindingDirection(override)
    elif TRIGGER_SUFFIX in binding_type:
        direction = BindingDirection.IN
    else:
        direction = BindingDirection.OUT

    values: Dict[str, Any] = {}
    for spec in settings:
        if is_supplied(user_settings.get(spec.name)):
            values[spec.name] = user_settings[spec.name]
        elif spec.required and spec.has_default:
            values[spec.name] = spec.default_value
        elif spec.required and spec.is_storage_resource:
            values[spec.name] = storage_connection_setting
        elif spec.required:
            raise MissingRequiredSettingError(spec.name, binding_type)
        elif spec.is_enum and spec.name != WEBHOOK_TYPE_SETTING and spec.enum:
            values[spec.name] = spec.enum[0].value

    return ResolvedBinding(type=binding_type, direction=direction, settings=values)


def http_output_binding(trigger_settings: Dict[str, Any]) -> ResolvedBinding:
    """Response binding for a function whose only binding is an HTTP trigger."""
    name = HTTP_RETURN_NAME
    if is_supplied(trigger_settings.get(WEBHOOK_TYPE_SETTING)):
        name = HTTP_WEBHOOK_RETURN_NAME
    return ResolvedBinding(
        type=HTTP_OUTPUT_TYPE,
        direction=BindingDirection.OUT,
        settings={"name": name},
    )


# ============================================================================
# RESOLVER
# ============================================================================

class BindingResolver:
    """
    Resolves manifest functions against the binding catalog.

    Stateless apart from the read-only index; one instance can serve
    any number of functions, including from several threads.
    """

    def __init__(
        self,
        index: Optional[CatalogIndex] = None,
        defaults: Optional[BindingDefaults] = None,
    ):
        self.index = index or get_catalog_index()
        self.defaults = defaults or get_defaults().bindings

    def resolve(
        self,
        function_name: str,
        handler: str,
        events: Sequence[FunctionEvent],
    ) -> FunctionMetadata:
        """
        Resolve one function.

        Args:
            function_name: Function name (for logs and the result)
            handler: Handler reference, e.g. "index.run"
            events: Declared events in manifest order

        Returns:
            FunctionMetadata

        Raises:
            UnsupportedBindingError: Unknown event kind or direction variant
            MissingRequiredSettingError: Required setting cannot be filled
        """
        bindings: List[ResolvedBinding] = []
        binding_type: Optional[str] = None
        user_settings: Dict[str, Any] = {}

        with log_context(function_name=function_name):
            for position, event in enumerate(events):
                binding_type = lookup_key(event, position)
                with log_context(binding_type=binding_type):
                    logger.info(
                        f"Building binding for function: {function_name} event: {binding_type}"
                    )
                    binding, user_settings = self._resolve_event(
                        binding_type, self._collect_user_settings(binding_type, event)
                    )
                    bindings.append(binding)

            if binding_type == HTTP_TRIGGER_TYPE and len(bindings) == 1:
                bindings.append(http_output_binding(user_settings))

            entry_point, handler_path = get_entry_point_and_handler_path(handler, self.defaults)

        return FunctionMetadata(
            function_name=function_name,
            entry_point=entry_point,
            handler_path=handler_path,
            bindings=bindings,
        )

    def resolve_function(
        self,
        function_name: str,
        definition: FunctionDefinition,
    ) -> FunctionMetadata:
        """Resolve a FunctionDefinition from the manifest."""
        return self.resolve(function_name, definition.handler, definition.events)

    def resolve_service(self, manifest: ServiceManifest) -> Dict[str, FunctionMetadata]:
        """
        Resolve every function of a manifest, in declaration order.

        Fails on the first function that cannot be resolved.
        """
        return {
            name: self.resolve_function(name, definition)
            for name, definition in manifest.functions.items()
        }

    def _collect_user_settings(self, binding_type: str, event: FunctionEvent) -> Dict[str, Any]:
        """
        Gather the user-supplied values for one event.

        Returns the direction override (if any), the queue shorthand and
        every x-azure-settings key; unknown keys are filtered later against
        the resolved shape.
        """
        collected: Dict[str, Any] = {}

        direction = event.azure_settings.get(DIRECTION_SETTING)
        if is_supplied(direction):
            collected[DIRECTION_SETTING] = str(direction).lower()

        queue = event.shorthand(QUEUE_SHORTHAND_KEY)
        if QUEUE_SHORTHAND_KEY in binding_type and is_supplied(queue):
            collected[QUEUE_NAME_SETTING] = queue

        for key, value in event.azure_settings.items():
            if key != DIRECTION_SETTING:
                collected[key] = value

        return collected

    def _resolve_event(
        self,
        binding_type: str,
        user_settings: Dict[str, Any],
    ) -> Tuple[ResolvedBinding, Dict[str, Any]]:
        """Resolve one event; returns the binding and the settings it accepted."""
        position = resolve_shape_index(
            self.index, binding_type, user_settings.get(DIRECTION_SETTING)
        )
        known = set(self.index.setting_names_at(position))

        recognized: Dict[str, Any] = {}
        for key, value in user_settings.items():
            if key in known or key == DIRECTION_SETTING:
                recognized[key] = value
            else:
                logger.warning(f"Dropping setting '{key}': not defined for binding {binding_type}")

        binding = build_binding(
            binding_type,
            self.index.settings_at(position),
            recognized,
            self.defaults.storage_connection_setting,
        )
        return binding, recognized


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def get_function_metadata(
    function_name: str,
    manifest: ServiceManifest,
    index: Optional[CatalogIndex] = None,
) -> FunctionMetadata:
    """Resolve one named function of a manifest."""
    definition = manifest.get_function(function_name)
    return BindingResolver(index).resolve_function(function_name, definition)


__all__ = [
    "BindingError",
    "UnsupportedBindingError",
    "MissingRequiredSettingError",
    "BindingResolver",
    "build_binding",
    "http_output_binding",
    "resolve_shape_index",
    "lookup_key",
    "get_entry_point_and_handler_path",
    "get_function_metadata",
]
