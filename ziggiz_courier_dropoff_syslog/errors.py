# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Exception hierarchy for syslog writers


class SyslogWriterError(Exception):
    """
    Base class for all errors raised by syslog writers.
    """


class InvalidDestinationError(SyslogWriterError, ValueError):
    """
    Exception raised when a destination URL cannot be parsed into host and port.
    """


class InvalidSchemeError(InvalidDestinationError):
    """
    Exception raised when a destination does not use the syslog-tls scheme.

    Attributes:
        scheme: The offending scheme string
    """

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(
            f"Invalid scheme '{scheme}' for TLS syslog writer, expected 'syslog-tls'"
        )


class TLSHandshakeError(SyslogWriterError):
    """
    Exception raised when the TLS handshake or peer certificate validation fails.
    """


class SyslogConnectionError(SyslogWriterError, ConnectionError):
    """
    Exception raised when the collector cannot be reached (refused, unreachable, timeout).
    """


class AlreadyConnectedError(SyslogWriterError):
    """
    Exception raised when connect is called on a writer that already holds a connection.
    """


class NotConnectedError(SyslogWriterError):
    """
    Exception raised when a write is attempted without a live connection.
    """


class WriteError(SyslogWriterError):
    """
    Exception raised when the transport fails while writing a frame.
    """
