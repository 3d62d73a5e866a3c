"""
Security Context and Logging Tests
==================================

Created: 2025-12-12
Author: jetgause
"""

import json
import logging
import os
import sys
from unittest.mock import patch

import pytest

from crm_security.config import EnvironmentMode, SecurityConfig
from crm_security.context import SecurityContext, create_security_context
from crm_security.crypto import AESGCMCipher, ReversibleEncodingCipher
from crm_security.exceptions import ConfigurationError
from crm_security.logging_config import ROOT_LOGGER_NAME, JSONFormatter, configure_logging
from crm_security.storage import FileStorage, MemoryStorage


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, '_crm_security', False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)


class TestSecurityContext:
    """Test the composition root."""

    def test_store_is_lazy_and_single(self, demo_config, identities):
        context = SecurityContext(demo_config, identities=identities)
        assert context._store is None
        assert context.secure_store is context.secure_store

    def test_cipher_follows_mode(self, demo_config, hardened_config, identities):
        demo = SecurityContext(demo_config, identities=identities)
        hardened = SecurityContext(hardened_config, identities=identities)
        assert isinstance(demo.secure_store.cipher, ReversibleEncodingCipher)
        assert isinstance(hardened.secure_store.cipher, AESGCMCipher)

    def test_backend_from_storage_path(self, demo_config, identities, tmp_path):
        config = demo_config.with_overrides(storage_path=str(tmp_path / "s.json"))
        assert isinstance(SecurityContext(config, identities=identities).secure_store.backend, FileStorage)
        assert isinstance(SecurityContext(demo_config, identities=identities).secure_store.backend, MemoryStorage)

    def test_services_share_limiter(self, demo_config, identities):
        context = SecurityContext(demo_config, identities=identities)
        assert context.monitor.rate_limiter is context.rate_limiter
        assert context.session.rate_limiter is context.rate_limiter
        assert context.session.store is context.secure_store

    def test_contexts_are_isolated(self, demo_config, identities):
        a = SecurityContext(demo_config, identities=identities)
        b = SecurityContext(demo_config, identities=identities)
        a.monitor.monitor_input("<script>")
        assert b.monitor.events == []

    def test_unsafe_config_rejected(self, identities):
        config = SecurityConfig.for_mode(EnvironmentMode.HARDENED, secret_key="secret")
        with pytest.raises(ConfigurationError):
            SecurityContext(config, identities=identities)

    def test_form_guard_reports_to_monitor(self, demo_config, identities):
        context = SecurityContext(demo_config, identities=identities)
        guard = context.form_guard("settings")
        guard.validate_field("company_name", "<script>")
        assert len(context.monitor.events) == 1

    def test_create_security_context_from_env(self, tmp_path, identities):
        env = {"CRM_BCRYPT_ROUNDS": "4", "CRM_LOG_LEVEL": "WARNING"}
        with patch.dict(os.environ, env, clear=True):
            context = create_security_context(env_file=str(tmp_path / "missing.env"),
                                              identities=identities)
        assert context.config.mode == EnvironmentMode.DEMO
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.WARNING


class TestLogging:
    """Test logging configuration."""

    def test_handlers_replaced_on_reconfigure(self):
        configure_logging("INFO")
        configure_logging("DEBUG")
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        ours = [h for h in logger.handlers if getattr(h, '_crm_security', False)]
        assert len(ours) == 1
        assert logger.level == logging.DEBUG

    def test_file_handler_writes_json(self, tmp_path):
        log_file = tmp_path / "logs" / "security.log"
        logger = configure_logging("INFO", log_file=str(log_file))
        logger.getChild("monitor").warning("Security event recorded")
        for handler in logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["level"] == "WARNING"
        assert entry["message"] == "Security event recorded"
        assert entry["logger_name"] == "crm_security.monitor"

    def test_json_formatter_includes_exception(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = logging.LogRecord("crm_security", logging.ERROR, __file__, 1,
                                       "failed", None, sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert entry["extra"]["exception"]["type"] == "ValueError"
        assert entry["extra"]["exception"]["message"] == "bad value"
