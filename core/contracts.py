# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Foundation - Core enums and platform constants
# PURPOSE: Binding directions, setting kinds and Azure Functions conventions
# CREATED: 06 OCT 2026
# EXPORTS: BindingDirection, SettingValueKind, DeploymentPhase, constants
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the deployer.

These values cross the boundary between the manifest (serverless.yml),
the binding catalog (bindings.json) and the generated function.json files,
so they are spelled exactly as the Functions host expects them.
"""

from enum import Enum


# ============================================================================
# ENUMS
# ============================================================================

class BindingDirection(str, Enum):
    """Direction of a binding relative to the function."""
    IN = "in"
    OUT = "out"


class SettingValueKind(str, Enum):
    """
    Value kinds declared by catalog settings.

    Only ENUM changes resolution behaviour (first option is auto-bound);
    the others are carried for completeness.
    """
    STRING = "string"
    ENUM = "enum"
    BOOLEAN = "boolean"
    INT = "int"
    CHECKBOX_LIST = "checkBoxList"


class DeploymentPhase(str, Enum):
    """
    Phases of the deployment lifecycle (full deploy phases in execution order).

    Used as log context and to label failures in DeploymentResult.
    """
    LOGIN = "login"
    RESOURCE_GROUP = "resource_group"
    FUNCTION_APP = "function_app"
    PACKAGE = "package"
    UPLOAD = "upload"
    CLEANUP = "cleanup"
    REMOVE = "remove"
    INVOKE = "invoke"
    LOGS = "logs"
    RESOLVE = "resolve"


# ============================================================================
# PLATFORM CONVENTIONS
# ============================================================================

# The first event of a function is always its trigger
TRIGGER_SUFFIX = "Trigger"

HTTP_TRIGGER_TYPE = "httpTrigger"
HTTP_OUTPUT_TYPE = "http"

# Settings with special handling during resolution
DIRECTION_SETTING = "direction"
WEBHOOK_TYPE_SETTING = "webHookType"
QUEUE_NAME_SETTING = "queueName"

# Manifest keys
AZURE_SETTINGS_KEY = "x-azure-settings"
QUEUE_SHORTHAND_KEY = "queue"

# Catalog resource tag whose connection defaults to the app's own storage
STORAGE_RESOURCE = "storage"

# Output binding names for the synthesized HTTP response
HTTP_RETURN_NAME = "$return"
HTTP_WEBHOOK_RETURN_NAME = "res"


__all__ = [
    "BindingDirection",
    "SettingValueKind",
    "DeploymentPhase",
    "TRIGGER_SUFFIX",
    "HTTP_TRIGGER_TYPE",
    "HTTP_OUTPUT_TYPE",
    "DIRECTION_SETTING",
    "WEBHOOK_TYPE_SETTING",
    "QUEUE_NAME_SETTING",
    "AZURE_SETTINGS_KEY",
    "QUEUE_SHORTHAND_KEY",
    "STORAGE_RESOURCE",
    "HTTP_RETURN_NAME",
    "HTTP_WEBHOOK_RETURN_NAME",
]
