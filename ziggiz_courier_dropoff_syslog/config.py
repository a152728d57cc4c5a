# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Configuration module for loading and validating writer configuration

# Standard library imports
import logging

from pathlib import Path
from typing import Any, List, Optional, Union

# Third-party imports
import yaml

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Local/package imports
from ziggiz_courier_dropoff_syslog.protocol.destination import (
    DestinationDescriptor,
    parse_destination,
    validate_destination,
)
from ziggiz_courier_dropoff_syslog.protocol.message import (
    APP_NAME_MAX_LENGTH,
    NILVALUE,
    header_field,
)
from ziggiz_courier_dropoff_syslog.protocol.trust import (
    TrustPolicy,
    normalize_fingerprint,
)


class LoggerConfig(BaseModel):
    """
    Configuration for individual loggers.

    Attributes:
        name (str): Logger name.
        level (str): Logging level (default: "INFO").
        propagate (bool): Whether to propagate logs to parent (default: True).
    """

    name: str
    level: str = "INFO"
    propagate: bool = True


class WriterConfig(BaseModel):
    """
    Configuration for a TLS syslog writer.

    Instances are frozen: a writer owns its configuration and it never changes
    after the writer is constructed.
    """

    model_config = ConfigDict(frozen=True)

    # Destination and identity
    destination: str  # syslog-tls://host:port
    app_id: str  # APP-NAME of every message, 1-48 printable ASCII characters
    hostname: Optional[str] = None  # HOSTNAME header, defaults to the local host name

    # TLS configuration
    tls_verify: bool = True  # Validate the collector certificate chain and host name
    tls_ca_certs: Optional[str] = None  # Extra CA bundle trusted alongside the system store
    tls_pinned_fingerprint: Optional[str] = (
        None  # SHA-256 of the collector leaf certificate (requires tls_verify False)
    )
    tls_certfile: Optional[str] = None  # Client certificate for mutual TLS
    tls_keyfile: Optional[str] = None  # Client private key for mutual TLS
    tls_min_version: str = "TLSv1_2"  # Minimum TLS version to negotiate
    tls_ciphers: Optional[str] = None  # Optional cipher string to restrict allowed ciphers
    server_hostname: Optional[str] = None  # SNI and host name check override

    # Timeouts (seconds)
    connect_timeout: float = 5.0
    write_timeout: Optional[float] = None

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    loggers: List[LoggerConfig] = Field(default_factory=list)

    @field_validator("destination", mode="before")
    @classmethod
    def validate_destination_url(cls, v: Any) -> str:
        """Validate that the destination uses the syslog-tls scheme and names a host."""
        return str(validate_destination(v))

    @field_validator("app_id")
    @classmethod
    def validate_app_id(cls, v: str) -> str:
        """Validate that the app id is a legal RFC 5424 APP-NAME, so it is sent unchanged."""
        if not 0 < len(v) <= APP_NAME_MAX_LENGTH:
            raise ValueError(
                f"app_id must be 1 to {APP_NAME_MAX_LENGTH} characters, got {len(v)}"
            )
        if header_field(v, APP_NAME_MAX_LENGTH) != v or v == NILVALUE:
            raise ValueError(
                f"Invalid app_id '{v}': only printable US-ASCII without spaces is allowed"
            )
        return v

    @field_validator("tls_ca_certs", "tls_certfile", "tls_keyfile")
    @classmethod
    def validate_tls_file(cls, v: Optional[str]) -> Optional[str]:
        """Validate that configured certificate and key files exist."""
        if v is not None and not Path(v).exists():
            raise ValueError(f"TLS file not found: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is a valid Python logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("tls_min_version")
    @classmethod
    def validate_tls_min_version(cls, v: str) -> str:
        """Validate that the TLS version is valid."""
        valid_versions = ["TLSv1_2", "TLSv1_3"]
        for ver in valid_versions:
            if v.upper() == ver.upper():
                return ver
        raise ValueError(f"Invalid TLS version: {v}. Must be one of {valid_versions}")

    @field_validator("tls_pinned_fingerprint")
    @classmethod
    def validate_fingerprint(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the pinned fingerprint to lower-case hex without colons."""
        if v is None:
            return v
        return normalize_fingerprint(v)

    @field_validator("connect_timeout", "write_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Validate that timeouts are positive."""
        if v is not None and v <= 0:
            raise ValueError(f"Timeouts must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def validate_tls_options(self) -> "WriterConfig":
        """Validate combinations of TLS options."""
        if bool(self.tls_certfile) != bool(self.tls_keyfile):
            raise ValueError(
                "tls_certfile and tls_keyfile must be provided together for mutual TLS"
            )
        if self.tls_pinned_fingerprint and self.tls_verify:
            raise ValueError(
                "A pinned fingerprint replaces chain verification "
                "(tls_verify must be False when tls_pinned_fingerprint is set)"
            )
        return self

    @property
    def descriptor(self) -> DestinationDescriptor:
        """Return the parsed destination."""
        return parse_destination(self.destination)

    def trust_policy(self) -> TrustPolicy:
        """Build the trust policy described by the TLS options."""
        if self.tls_pinned_fingerprint:
            return TrustPolicy.pin(self.tls_pinned_fingerprint)
        if self.tls_verify:
            return TrustPolicy.verify(ca_certs=self.tls_ca_certs)
        return TrustPolicy.skip()


def load_config(
    config_path: Optional[Union[str, Path]] = None, **overrides: Any
) -> WriterConfig:
    """
    Load writer configuration from a YAML file.

    Args:
        config_path: Path to the configuration file. If None, will look for config.yaml
                   in the current directory and default directories.
        **overrides: Values that take precedence over the file (None values are ignored)

    Returns:
        A WriterConfig object containing the loaded configuration.

    Raises:
        FileNotFoundError: If an explicit configuration file cannot be found.
        yaml.YAMLError: If the configuration file contains invalid YAML.
        pydantic.ValidationError: If the merged configuration is invalid.
    """
    # Default search paths
    search_paths = [
        Path.cwd() / "config.yaml",
        Path.cwd() / "config.yml",
        Path("/etc/ziggiz-courier-dropoff-syslog/config.yaml"),
        Path("/etc/ziggiz-courier-dropoff-syslog/config.yml"),
    ]

    config_data: dict = {}
    config_file: Optional[Path] = None

    # If config path is provided, try that first
    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
    else:
        for path in search_paths:
            if path.exists():
                config_file = path
                break
        else:
            logging.debug("No configuration file found, using overrides only")

    if config_file is not None:
        with open(config_file, "r") as f:
            try:
                config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logging.error("Error parsing configuration file", extra={"error": e})
                raise

    config_data.update({k: v for k, v in overrides.items() if v is not None})
    return WriterConfig(**config_data)


class SafeExtraFormatter(logging.Formatter):
    """
    Custom formatter that substitutes missing extra fields with a blank string.
    """

    def format(self, record: logging.LogRecord) -> str:
        # Add any expected extra fields with blank default if missing
        if not hasattr(record, "destination"):
            record.destination = ""
        return super().format(record)


def configure_logging(config: WriterConfig) -> None:
    """
    Configure logging based on the provided configuration.

    Args:
        config: The loaded configuration object.
    """
    # Reset logging configuration
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    # Configure root logger
    level = getattr(logging, config.log_level, logging.INFO)
    formatter = SafeExtraFormatter(config.log_format, datefmt=config.log_date_format)

    # Add console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logging.root.setLevel(level)
    logging.root.addHandler(console_handler)

    # Configure additional loggers from config
    for logger_config in config.loggers:
        logger = logging.getLogger(logger_config.name)
        logger.setLevel(getattr(logging, logger_config.level, logging.INFO))
        logger.propagate = logger_config.propagate
