# ============================================================================
# MANIFEST TEMPLATE RESOLUTION
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Service - Template resolution with Jinja2
# PURPOSE: Resolve {{ }} expressions in serverless.yml values
# CREATED: 09 OCT 2026
# ============================================================================
"""
Manifest Template Resolution

Resolves template expressions in manifest values before validation.

Supported patterns:
- {{ env.VAR_NAME }} - Environment variables
- {{ opt.name }}     - Command line options (e.g. --opt stage=dev)
- {{ manifest.key }} - Top-level keys of the raw manifest

Examples:
    service: "orders-{{ opt.stage }}"
    functions:
      ingest:
        events:
          - queue: "{{ env.INGEST_QUEUE }}"

Unknown names are errors, never empty strings.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateSyntaxError, UndefinedError

logger = logging.getLogger(__name__)


class TemplateResolutionError(Exception):
    """Raised when a template expression cannot be resolved."""
    pass


class TemplateResolver:
    """
    Jinja2-based resolver for manifest values.

    Thread-safe, can be reused across manifests.
    """

    def __init__(self):
        self._env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            undefined=StrictUndefined,
        )
        self._template_pattern = re.compile(r"\{\{.*?\}\}", re.DOTALL)

    def resolve(self, value: Any, context: "TemplateContext") -> Any:
        """
        Resolve all template expressions in a value.

        Dicts and lists are walked recursively; other values pass through.

        Raises:
            TemplateResolutionError: If an expression cannot be resolved
        """
        return self._resolve_value(value, context.to_dict())

    def _resolve_value(self, value: Any, context: Dict[str, Any]) -> Any:
        if isinstance(value, str):
            return self._resolve_string(value, context)
        elif isinstance(value, dict):
            return {k: self._resolve_value(v, context) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._resolve_value(item, context) for item in value]
        return value

    def _resolve_string(self, value: str, context: Dict[str, Any]) -> str:
        if "{{" not in value:
            return value
        try:
            return self._env.from_string(value).render(context)
        except (TemplateSyntaxError, UndefinedError) as e:
            raise TemplateResolutionError(f"Failed to resolve '{value}': {e}") from e

    def has_templates(self, value: Any) -> bool:
        """Check if a value contains any template expressions."""
        if isinstance(value, str):
            return bool(self._template_pattern.search(value))
        elif isinstance(value, dict):
            return any(self.has_templates(v) for v in value.values())
        elif isinstance(value, list):
            return any(self.has_templates(item) for item in value)
        return False


class TemplateContext:
    """
    Names available to manifest templates.

    - env: Environment variables
    - opt: Command line options
    - manifest: Raw manifest top-level values
    """

    def __init__(
        self,
        options: Optional[Dict[str, Any]] = None,
        manifest: Optional[Dict[str, Any]] = None,
        env_prefix: str = "",
    ):
        self.options = options or {}
        self.manifest = manifest or {}
        self.env_prefix = env_prefix

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for Jinja2 rendering."""
        return {
            "env": _EnvAccessor(self.env_prefix),
            "opt": self.options,
            "manifest": self.manifest,
        }


class _EnvAccessor:
    """Attribute access to environment variables, prefixed name first."""

    def __init__(self, prefix: str = ""):
        self._prefix = prefix

    def __getattr__(self, name: str) -> str:
        if self._prefix:
            value = os.environ.get(f"{self._prefix}{name}")
            if value is not None:
                return value

        value = os.environ.get(name)
        if value is not None:
            return value

        raise AttributeError(f"Environment variable not found: {name}")


_resolver: Optional[TemplateResolver] = None


def get_resolver() -> TemplateResolver:
    """Get shared template resolver instance."""
    global _resolver
    if _resolver is None:
        _resolver = TemplateResolver()
    return _resolver


__all__ = [
    "TemplateResolver",
    "TemplateContext",
    "TemplateResolutionError",
    "get_resolver",
]
