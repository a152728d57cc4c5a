# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Tests for the configuration module

# Standard library imports
import logging

from unittest.mock import mock_open, patch

# Third-party imports
import pytest
import yaml

from pydantic import ValidationError

# Local/package imports
from ziggiz_courier_dropoff_syslog.config import (
    LoggerConfig,
    SafeExtraFormatter,
    WriterConfig,
    configure_logging,
    load_config,
)
from ziggiz_courier_dropoff_syslog.protocol.trust import TrustMode

DESTINATION = "syslog-tls://collector.example.com:6514"
FINGERPRINT = "ab" * 32


class TestWriterConfig:
    """Tests for the WriterConfig model."""

    @pytest.mark.unit
    def test_config_defaults(self):
        """Test default configuration values."""
        config = WriterConfig(destination=DESTINATION, app_id="appId")
        assert config.destination == DESTINATION
        assert config.app_id == "appId"
        assert config.hostname is None
        assert config.log_level == "INFO"
        assert config.loggers == []
        # Check TLS defaults
        assert config.tls_verify is True
        assert config.tls_ca_certs is None
        assert config.tls_pinned_fingerprint is None
        assert config.tls_certfile is None
        assert config.tls_keyfile is None
        assert config.tls_min_version == "TLSv1_2"
        assert config.tls_ciphers is None
        assert config.server_hostname is None
        # Check timeout defaults
        assert config.connect_timeout == 5.0
        assert config.write_timeout is None

    @pytest.mark.unit
    def test_config_is_frozen(self):
        config = WriterConfig(destination=DESTINATION, app_id="appId")

        with pytest.raises(ValidationError):
            config.app_id = "other"

    @pytest.mark.unit
    def test_destination_normalized(self):
        config = WriterConfig(destination="SYSLOG-TLS://collector", app_id="appId")

        assert config.destination == "syslog-tls://collector:6514"
        assert config.descriptor.address == ("collector", 6514)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "destination", ["syslog://collector:514", "syslog-tls://:6514", "https://x"]
    )
    def test_destination_invalid(self, destination):
        with pytest.raises(ValidationError):
            WriterConfig(destination=destination, app_id="appId")

    @pytest.mark.unit
    def test_validate_log_level_valid(self):
        """Test validation of valid log levels."""
        config = WriterConfig(destination=DESTINATION, app_id="a", log_level="debug")
        assert config.log_level == "DEBUG"

    @pytest.mark.unit
    def test_validate_log_level_invalid(self):
        """Test validation of invalid log levels."""
        with pytest.raises(ValueError):
            WriterConfig(destination=DESTINATION, app_id="a", log_level="INVALID_LEVEL")

    @pytest.mark.unit
    def test_validate_tls_min_version_valid(self):
        """Test validation of valid TLS version values."""
        config = WriterConfig(
            destination=DESTINATION, app_id="a", tls_min_version="tlsv1_3"
        )
        assert config.tls_min_version == "TLSv1_3"

    @pytest.mark.unit
    def test_validate_tls_min_version_invalid(self):
        """Test validation of invalid TLS version values."""
        with pytest.raises(ValueError):
            WriterConfig(destination=DESTINATION, app_id="a", tls_min_version="TLSv1_1")

    @pytest.mark.unit
    @pytest.mark.parametrize("field", ["connect_timeout", "write_timeout"])
    @pytest.mark.parametrize("value", [0, -1.5])
    def test_validate_timeout_invalid(self, field, value):
        with pytest.raises(ValidationError):
            WriterConfig(destination=DESTINATION, app_id="a", **{field: value})

    @pytest.mark.unit
    def test_client_certificate_requires_key(self, tmp_path):
        certfile = tmp_path / "client.pem"
        certfile.write_text("certificate")

        with pytest.raises(ValidationError) as excinfo:
            WriterConfig(destination=DESTINATION, app_id="a", tls_certfile=str(certfile))

        assert "must be provided together" in str(excinfo.value)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "field", ["tls_ca_certs", "tls_certfile", "tls_keyfile"]
    )
    def test_missing_tls_file(self, tmp_path, field):
        missing = str(tmp_path / "missing.pem")

        with pytest.raises(ValidationError) as excinfo:
            WriterConfig(destination=DESTINATION, app_id="a", **{field: missing})

        assert "TLS file not found" in str(excinfo.value)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "app_id", ["appId", "billing-api.v2", "a" * 48, "!~"]
    )
    def test_app_id_valid(self, app_id):
        config = WriterConfig(destination=DESTINATION, app_id=app_id)

        assert config.app_id == app_id

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "app_id", ["", "-", "my app", "café", "tab\there", "a" * 49]
    )
    def test_app_id_invalid(self, app_id):
        with pytest.raises(ValidationError) as excinfo:
            WriterConfig(destination=DESTINATION, app_id=app_id)

        assert "app_id" in str(excinfo.value)

    @pytest.mark.unit
    def test_pin_requires_verify_disabled(self):
        with pytest.raises(ValidationError):
            WriterConfig(
                destination=DESTINATION, app_id="a", tls_pinned_fingerprint=FINGERPRINT
            )

    @pytest.mark.unit
    def test_pin_normalized(self):
        colon_form = ":".join(["AB"] * 32)

        config = WriterConfig(
            destination=DESTINATION,
            app_id="a",
            tls_verify=False,
            tls_pinned_fingerprint=colon_form,
        )

        assert config.tls_pinned_fingerprint == FINGERPRINT

    @pytest.mark.unit
    def test_pin_invalid(self):
        with pytest.raises(ValidationError):
            WriterConfig(
                destination=DESTINATION,
                app_id="a",
                tls_verify=False,
                tls_pinned_fingerprint="not-a-fingerprint",
            )

    @pytest.mark.unit
    def test_trust_policy(self, tmp_path):
        ca_certs = tmp_path / "ca.pem"
        ca_certs.write_text("certificate")

        verify = WriterConfig(
            destination=DESTINATION, app_id="a", tls_ca_certs=str(ca_certs)
        ).trust_policy()
        skip = WriterConfig(
            destination=DESTINATION, app_id="a", tls_verify=False
        ).trust_policy()
        pin = WriterConfig(
            destination=DESTINATION,
            app_id="a",
            tls_verify=False,
            tls_pinned_fingerprint=FINGERPRINT,
        ).trust_policy()

        assert verify.mode == TrustMode.VERIFY
        assert verify.ca_certs == str(ca_certs)
        assert skip.mode == TrustMode.SKIP
        assert pin.mode == TrustMode.PIN
        assert pin.fingerprint == FINGERPRINT

    @pytest.mark.unit
    def test_logger_config(self):
        """Test logger configuration."""
        logger_config = LoggerConfig(name="test.logger", level="DEBUG")
        assert logger_config.name == "test.logger"
        assert logger_config.level == "DEBUG"
        assert logger_config.propagate is True


class TestLoadConfig:
    """Tests for load_config."""

    @pytest.mark.unit
    @patch(
        "builtins.open",
        new_callable=mock_open,
        read_data="""
destination: "syslog-tls://collector.example.com:10514"
app_id: "billing"
hostname: "web-01"
tls_ca_certs: "/path/to/ca.pem"
tls_min_version: "TLSv1_3"
tls_ciphers: "HIGH:!aNULL:!MD5"
connect_timeout: 2.5
log_level: "DEBUG"
loggers:
  - name: "test.logger"
    level: "DEBUG"
    propagate: false
""",
    )
    @patch("pathlib.Path.exists")
    def test_load_config(self, mock_exists, mock_file):
        """Test loading configuration from a file."""
        mock_exists.return_value = True

        config = load_config("test_config.yaml")

        assert config.destination == "syslog-tls://collector.example.com:10514"
        assert config.app_id == "billing"
        assert config.hostname == "web-01"
        assert config.tls_ca_certs == "/path/to/ca.pem"
        assert config.tls_min_version == "TLSv1_3"
        assert config.tls_ciphers == "HIGH:!aNULL:!MD5"
        assert config.connect_timeout == 2.5
        assert config.log_level == "DEBUG"

        assert len(config.loggers) == 1
        assert config.loggers[0].name == "test.logger"
        assert config.loggers[0].level == "DEBUG"
        assert config.loggers[0].propagate is False

    @pytest.mark.unit
    def test_overrides_take_precedence(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "destination: syslog-tls://collector:6514\napp_id: from-file\n"
        )

        config = load_config(config_file, app_id="from-cli", hostname=None)

        assert config.app_id == "from-cli"
        assert config.hostname is None
        assert config.destination == "syslog-tls://collector:6514"

    @pytest.mark.unit
    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        config = load_config(
            config_file, destination="syslog-tls://collector", app_id="appId"
        )

        assert config.destination == "syslog-tls://collector:6514"

    @pytest.mark.unit
    def test_load_config_invalid_yaml(self, tmp_path):
        """Test handling of invalid YAML in config file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("destination: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_config(config_file)

    @pytest.mark.unit
    @patch("pathlib.Path.exists", return_value=False)
    def test_load_config_not_found(self, mock_exists):
        """Test handling of configuration file not found."""
        # When explicit config path is provided but file doesn't exist
        with pytest.raises(FileNotFoundError):
            load_config("non_existent_config.yaml")

        # When no config path is provided, overrides alone must be complete
        config = load_config(destination=DESTINATION, app_id="appId")
        assert isinstance(config, WriterConfig)
        assert config.destination == DESTINATION

        with pytest.raises(ValidationError):
            load_config()

    @pytest.mark.unit
    def test_invalid_scheme_in_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("destination: syslog://collector:514\napp_id: a\n")

        with pytest.raises(ValidationError) as excinfo:
            load_config(config_file)

        assert "syslog-tls" in str(excinfo.value)


class TestConfigureLogging:
    """Tests for logging setup from configuration."""

    @pytest.mark.unit
    def test_configure_logging(self):
        """Test configuring logging from configuration."""
        # Save the original loggers
        original_loggers = logging.Logger.manager.loggerDict.copy()

        try:
            config = WriterConfig(
                destination=DESTINATION,
                app_id="appId",
                log_level="DEBUG",
                loggers=[
                    LoggerConfig(name="test.logger", level="INFO"),
                    LoggerConfig(name="test.debug", level="DEBUG", propagate=False),
                ],
            )

            configure_logging(config)

            # Check root logger
            assert logging.root.level == logging.DEBUG
            assert len(logging.root.handlers) == 1
            assert isinstance(logging.root.handlers[0].formatter, SafeExtraFormatter)

            # Check custom loggers
            test_logger = logging.getLogger("test.logger")
            assert test_logger.level == logging.INFO
            assert test_logger.propagate is True

            debug_logger = logging.getLogger("test.debug")
            assert debug_logger.level == logging.DEBUG
            assert debug_logger.propagate is False

        finally:
            # Clear and restore logger dict
            for logger_name in list(logging.Logger.manager.loggerDict.keys()):
                if logger_name not in original_loggers:
                    del logging.Logger.manager.loggerDict[logger_name]

    @pytest.mark.unit
    def test_safe_extra_formatter(self):
        formatter = SafeExtraFormatter("%(message)s [%(destination)s]")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)

        assert formatter.format(record) == "hello []"

        record.destination = "syslog-tls://collector:6514"
        assert formatter.format(record) == "hello [syslog-tls://collector:6514]"
