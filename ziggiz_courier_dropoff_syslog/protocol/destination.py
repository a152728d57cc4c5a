# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Destination parsing and scheme validation for syslog writers

# Standard library imports
from typing import Tuple, Union
from urllib.parse import urlsplit

# Third-party imports
from pydantic import BaseModel, ConfigDict

# Local/package imports
from ziggiz_courier_dropoff_syslog.errors import (
    InvalidDestinationError,
    InvalidSchemeError,
)

# Constants
SYSLOG_TLS_SCHEME = "syslog-tls"
DEFAULT_SYSLOG_TLS_PORT = 6514  # RFC 5425


class DestinationDescriptor(BaseModel):
    """
    Parsed form of a destination URL such as ``syslog-tls://collector:6514``.

    Attributes:
        scheme (str): The URL scheme, lower-cased.
        host (str): Host name or IP address, without IPv6 brackets.
        port (int): TCP port (default: 6514).
    """

    model_config = ConfigDict(frozen=True)

    scheme: str
    host: str = ""
    port: int = DEFAULT_SYSLOG_TLS_PORT

    @property
    def address(self) -> Tuple[str, int]:
        """Return the (host, port) pair to dial."""
        return self.host, self.port

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}"


def parse_destination(url: Union[str, DestinationDescriptor]) -> DestinationDescriptor:
    """
    Parse a destination URL into a DestinationDescriptor.

    No scheme check is done here and no network access occurs.

    Args:
        url: The destination URL, or an already parsed descriptor

    Returns:
        The parsed descriptor

    Raises:
        InvalidDestinationError: If the URL or its port cannot be parsed
    """
    if isinstance(url, DestinationDescriptor):
        return url

    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except (AttributeError, ValueError) as e:
        raise InvalidDestinationError(f"Invalid destination URL '{url}': {e}") from e

    return DestinationDescriptor(
        scheme=parts.scheme.lower(),
        host=parts.hostname or "",
        port=port if port is not None else DEFAULT_SYSLOG_TLS_PORT,
    )


def validate_scheme(descriptor: DestinationDescriptor) -> None:
    """
    Check that a descriptor requests the secure syslog transport.

    Args:
        descriptor: The parsed destination

    Raises:
        InvalidSchemeError: If the scheme is anything other than syslog-tls
    """
    if descriptor.scheme != SYSLOG_TLS_SCHEME:
        raise InvalidSchemeError(descriptor.scheme)


def validate_destination(url: Union[str, DestinationDescriptor]) -> DestinationDescriptor:
    """
    Parse a destination and check its scheme, host and port.

    Args:
        url: The destination URL or descriptor

    Returns:
        The validated descriptor

    Raises:
        InvalidSchemeError: If the scheme is not syslog-tls
        InvalidDestinationError: If the host is missing or the port is out of range
    """
    descriptor = parse_destination(url)
    validate_scheme(descriptor)

    if not descriptor.host:
        raise InvalidDestinationError(f"Destination '{url}' does not name a host")
    if not 0 < descriptor.port < 65536:
        raise InvalidDestinationError(
            f"Destination port {descriptor.port} is out of range"
        )

    return descriptor
