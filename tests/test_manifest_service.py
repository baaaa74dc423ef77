# ============================================================================
# MANIFEST SERVICE TESTS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Tests - serverless.yml loading
# PURPOSE: Verify manifest parsing, template resolution and validation errors
# CREATED: 13 OCT 2026
# ============================================================================
"""
Manifest Service Tests

Tests:
1. serverless.yml loads into a ServiceManifest with ordered functions
2. Events parse kind, shorthand fields and x-azure-settings
3. {{ env.* }}, {{ opt.* }} and {{ manifest.* }} resolve; unknown names fail
4. Invalid manifests raise ManifestError naming the file

Run with:
    pytest tests/test_manifest_service.py -v
"""

import textwrap

import pytest

from services.manifest_service import ManifestError, ManifestService, parse_manifest
from services.templates import TemplateContext, TemplateResolutionError, TemplateResolver


MANIFEST = """
service: orders

provider:
  name: azure
  location: North Europe
  subscriptionId: TEST_SUBSCRIPTION_ID
  servicePrincipalTenantId: TEST_TENANT_ID
  servicePrincipalClientId: TEST_CLIENT_ID
  servicePrincipalPassword: TEST_CLIENT_SECRET

functions:
  hello:
    handler: index.run
    events:
      - http: true
        x-azure-settings:
          authLevel: anonymous
  ingest:
    handler: ingest.main
    events:
      - queue: incoming
        x-azure-settings:
          connection: OrdersStorage
      - blob: archive/{name}
        x-azure-settings:
          direction: out
"""


# ============================================================================
# FIXTURES
# ============================================================================

def write_service(tmp_path, content, filename="serverless.yml"):
    (tmp_path / filename).write_text(textwrap.dedent(content))
    return tmp_path


@pytest.fixture
def service_dir(tmp_path):
    return write_service(tmp_path, MANIFEST)


# ============================================================================
# LOADING
# ============================================================================

class TestLoadManifest:

    def test_loads_service_and_provider(self, service_dir):
        manifest = ManifestService(service_dir).load()

        assert manifest.service == "orders"
        assert manifest.provider.location == "North Europe"
        assert manifest.provider.subscription_id == "TEST_SUBSCRIPTION_ID"
        assert manifest.provider.client_secret == "TEST_CLIENT_SECRET"
        assert manifest.service_path == str(service_dir)

    def test_functions_keep_declaration_order(self, service_dir):
        assert ManifestService(service_dir).function_names() == ["hello", "ingest"]

    def test_events_parsed(self, service_dir):
        ingest = ManifestService(service_dir).load().get_function("ingest")
        queue, blob = ingest.events

        assert queue.kind == "queue"
        assert queue.value == "incoming"
        assert queue.shorthand("queue") == "incoming"
        assert queue.azure_settings == {"connection": "OrdersStorage"}
        assert blob.azure_settings == {"direction": "out"}

    def test_cached_until_reload(self, service_dir):
        service = ManifestService(service_dir)
        first = service.load()
        assert service.load() is first
        assert service.reload() is not first

    def test_yaml_extension_alternative(self, tmp_path):
        write_service(tmp_path, "service: alt\n", filename="serverless.yaml")
        assert ManifestService(tmp_path).load().service == "alt"

    def test_null_function_body(self, tmp_path):
        write_service(tmp_path, """
            service: empty
            functions:
              noop:
        """)
        with pytest.raises(ManifestError):
            # A function needs a handler
            ManifestService(tmp_path).load()

    def test_service_mapping_form(self):
        manifest = parse_manifest({"service": {"name": "mapped"}})
        assert manifest.service == "mapped"

    def test_provider_defaults(self, tmp_path):
        write_service(tmp_path, "service: bare\n")
        manifest = ManifestService(tmp_path).load()
        assert manifest.provider.name == "azure"
        assert manifest.provider.location == "West US"
        assert manifest.functions == {}


# ============================================================================
# ERRORS
# ============================================================================

class TestManifestErrors:

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ManifestError) as exc_info:
            ManifestService(tmp_path).load()
        assert "serverless.yml" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        write_service(tmp_path, "service: [unclosed\n")
        with pytest.raises(ManifestError, match="invalid YAML"):
            ManifestService(tmp_path).load()

    def test_top_level_must_be_mapping(self, tmp_path):
        write_service(tmp_path, "- just\n- a list\n")
        with pytest.raises(ManifestError, match="mapping"):
            ManifestService(tmp_path).load()

    def test_unsupported_provider(self, tmp_path):
        write_service(tmp_path, """
            service: elsewhere
            provider:
              name: aws
        """)
        with pytest.raises(ManifestError) as exc_info:
            ManifestService(tmp_path).load()
        assert "aws" in str(exc_info.value)

    def test_event_without_kind(self, tmp_path):
        write_service(tmp_path, """
            service: broken
            functions:
              f:
                handler: index.run
                events:
                  - x-azure-settings:
                      direction: in
        """)
        with pytest.raises(ManifestError):
            ManifestService(tmp_path).load()

    def test_service_name_too_long(self):
        with pytest.raises(ValueError):
            parse_manifest({"service": "x" * 61})


# ============================================================================
# TEMPLATES
# ============================================================================

class TestManifestTemplates:

    def test_env_and_options(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ORDERS_QUEUE", "orders-live")
        write_service(tmp_path, """
            service: "orders-{{ opt.stage }}"
            functions:
              ingest:
                handler: index.run
                events:
                  - queue: "{{ env.ORDERS_QUEUE }}"
        """)
        manifest = ManifestService(tmp_path, options={"stage": "dev"}).load()

        assert manifest.service == "orders-dev"
        assert manifest.get_function("ingest").events[0].value == "orders-live"

    def test_manifest_self_reference(self, tmp_path):
        write_service(tmp_path, """
            service: orders
            custom:
              region: westeurope
            provider:
              location: "{{ manifest.custom.region }}"
        """)
        assert ManifestService(tmp_path).load().provider.location == "westeurope"

    def test_unknown_env_var(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DEFINITELY_NOT_SET", raising=False)
        write_service(tmp_path, 'service: "{{ env.DEFINITELY_NOT_SET }}"\n')
        with pytest.raises(ManifestError):
            ManifestService(tmp_path).load()

    def test_unknown_option(self, tmp_path):
        write_service(tmp_path, 'service: "orders-{{ opt.stage }}"\n')
        with pytest.raises(ManifestError):
            ManifestService(tmp_path).load()


class TestTemplateResolver:

    def test_non_template_values_pass_through(self):
        resolver = TemplateResolver()
        value = {"a": [1, True, None, "plain"]}
        assert resolver.resolve(value, TemplateContext()) == value

    def test_has_templates(self):
        resolver = TemplateResolver()
        assert resolver.has_templates({"a": ["{{ opt.x }}"]})
        assert not resolver.has_templates({"a": ["plain"]})

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DEV_QUEUE", "dev-q")
        monkeypatch.setenv("QUEUE", "q")
        resolver = TemplateResolver()
        assert resolver.resolve("{{ env.QUEUE }}", TemplateContext(env_prefix="DEV_")) == "dev-q"
        assert resolver.resolve("{{ env.QUEUE }}", TemplateContext()) == "q"

    def test_syntax_error(self):
        with pytest.raises(TemplateResolutionError):
            TemplateResolver().resolve("{{ opt. }}", TemplateContext())
