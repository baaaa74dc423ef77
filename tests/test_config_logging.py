# ============================================================================
# CONFIGURATION AND LOGGING TESTS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Tests - Defaults and structured logging
# PURPOSE: Verify env overrides, log context nesting and JSON records
# CREATED: 15 OCT 2026
# ============================================================================
"""
Configuration and Logging Tests

Run with:
    pytest tests/test_config_logging.py -v
"""

import json
import logging

import pytest

from core.config import BindingDefaults, Defaults, KuduDefaults, get_defaults, reset_defaults
from core.logging import (
    ComponentType,
    HumanFormatter,
    StructuredFormatter,
    get_current_context,
    get_logger,
    log_context,
)


class TestDefaults:

    def setup_method(self):
        reset_defaults()

    def teardown_method(self):
        reset_defaults()

    def test_builtin_values(self):
        defaults = Defaults()
        assert defaults.bindings.source_extension == ".js"
        assert defaults.bindings.storage_connection_setting == "AzureWebJobsStorage"
        assert defaults.deployment.resource_group_suffix == "-rg"
        assert defaults.kudu.invocation_limit == 5

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("DEPLOY_SOURCE_EXTENSION", ".ts")
        monkeypatch.setenv("DEPLOY_STORAGE_CONNECTION_SETTING", "MyStorage")
        monkeypatch.setenv("KUDU_READY_WAIT_SECONDS", "0")

        assert BindingDefaults.from_env().source_extension == ".ts"
        assert BindingDefaults.from_env().storage_connection_setting == "MyStorage"
        assert KuduDefaults.from_env().ready_wait_seconds == 0.0

    def test_shared_instance(self):
        assert get_defaults() is get_defaults()

    def test_frozen(self):
        with pytest.raises(Exception):
            BindingDefaults().source_extension = ".py"


class TestLogContext:

    def test_nesting_inherits_fields(self):
        with log_context(service="orders"):
            with log_context(function_name="hello", phase="package"):
                context = get_current_context()
                assert context.service == "orders"
                assert context.function_name == "hello"
            assert get_current_context().function_name is None
        assert get_current_context().service is None

    def test_popped_on_error(self):
        with pytest.raises(RuntimeError):
            with log_context(service="orders"):
                raise RuntimeError("boom")
        assert get_current_context().service is None


def make_record(logger_name="bindings.resolver", message="Building binding"):
    return logging.LogRecord(logger_name, logging.INFO, __file__, 1, message, None, None)


class TestFormatters:

    def test_structured_formatter_includes_context(self):
        with log_context(service="orders", function_name="hello"):
            payload = json.loads(StructuredFormatter().format(make_record()))

        assert payload["level"] == "INFO"
        assert payload["message"] == "Building binding"
        assert payload["context"] == {"service": "orders", "function_name": "hello"}
        assert "source" in payload

    def test_human_formatter_shows_function_and_binding(self):
        with log_context(function_name="hello", binding_type="httpTrigger"):
            line = HumanFormatter().format(make_record())
        assert "[fn=hello, binding=httpTrigger]" in line
        assert line.endswith("bindings.resolver [fn=hello, binding=httpTrigger]: Building binding")

    def test_context_logger_attaches_component(self, caplog):
        logger = get_logger("tests.component", ComponentType.PACKAGER)
        with caplog.at_level(logging.INFO, logger="tests.component"):
            with log_context(function_name="hello"):
                logger.info("packaging")

        record = caplog.records[-1]
        assert record.extra["component"] == "packager"
        assert record.extra["function_name"] == "hello"
