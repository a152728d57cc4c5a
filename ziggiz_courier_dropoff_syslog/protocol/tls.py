# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# TLS syslog writer with octet-counting framing

# Standard library imports
import asyncio
import logging
import socket
import ssl
import time

from typing import Any, Dict, Optional, Union

# Local/package imports
from ziggiz_courier_dropoff_syslog.config import WriterConfig
from ziggiz_courier_dropoff_syslog.errors import (
    AlreadyConnectedError,
    NotConnectedError,
    SyslogConnectionError,
    TLSHandshakeError,
    WriteError,
)
from ziggiz_courier_dropoff_syslog.protocol.base_writer import BaseSyslogWriter
from ziggiz_courier_dropoff_syslog.protocol.destination import (
    DestinationDescriptor,
    validate_destination,
)
from ziggiz_courier_dropoff_syslog.protocol.framing import encode_octet_counted
from ziggiz_courier_dropoff_syslog.protocol.message import (
    Timestamp,
    build_procid,
    format_rfc5424,
)
from ziggiz_courier_dropoff_syslog.protocol.trust import TrustPolicy
from ziggiz_courier_dropoff_syslog.telemetry import get_tracer

TLS_VERSIONS = {
    "TLSv1_2": ssl.TLSVersion.TLSv1_2,
    "TLSv1_3": ssl.TLSVersion.TLSv1_3,
}


class TLSContextBuilder:
    """
    Helper class to build SSL contexts for TLS connections.

    This class provides methods to create and configure client SSL contexts
    with appropriate security settings for syslog over TLS.
    """

    @staticmethod
    def create_client_context(
        trust_policy: TrustPolicy,
        certfile: Optional[str] = None,
        keyfile: Optional[str] = None,
        min_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1_2,
        ciphers: Optional[str] = None,
    ) -> ssl.SSLContext:
        """
        Create an SSL context for connecting to a collector.

        Args:
            trust_policy: How the collector certificate is trusted
            certfile: Path to the client certificate file for mutual TLS
            keyfile: Path to the client private key file for mutual TLS
            min_version: Minimum TLS version to negotiate (default: TLS 1.2)
            ciphers: Optional cipher string to restrict allowed ciphers

        Returns:
            The configured SSL context
        """
        # Create a client-side SSL context backed by the system trust store
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)

        trust_policy.apply(context)

        # Set minimum TLS version
        context.minimum_version = min_version

        # Set cipher suite if specified
        if ciphers:
            context.set_ciphers(ciphers)

        # Present a client certificate if one is configured
        if certfile:
            context.load_cert_chain(certfile=certfile, keyfile=keyfile)

        return context

    @classmethod
    def from_config(cls, config: WriterConfig) -> ssl.SSLContext:
        """Create a client SSL context from a writer configuration."""
        return cls.create_client_context(
            trust_policy=config.trust_policy(),
            certfile=config.tls_certfile,
            keyfile=config.tls_keyfile,
            min_version=TLS_VERSIONS[config.tls_min_version],
            ciphers=config.tls_ciphers,
        )


class TLSSyslogWriter(BaseSyslogWriter):
    """
    Syslog writer that delivers RFC 5424 messages to one collector over TLS.

    Each call to write produces exactly one octet-counted frame on the wire.
    Connect, write and close are serialized by a per-writer lock so frames
    from concurrent tasks never interleave. Connecting while connected raises
    AlreadyConnectedError; the existing connection is left alone. A connection
    the peer has dropped is replaced on the next connect.
    """

    def __init__(
        self,
        destination: Union[str, DestinationDescriptor],
        app_id: str,
        verify: bool = True,
        **options: Any,
    ):
        """
        Initialize the writer. No network I/O happens here.

        Args:
            destination: A syslog-tls:// URL or a parsed descriptor
            app_id: Identifier of the application producing the logs (APP-NAME),
                1 to 48 printable US-ASCII characters without spaces
            verify: Whether the collector certificate chain and host name are validated
            **options: Any other WriterConfig field (tls_ca_certs, connect_timeout, ...)

        Raises:
            InvalidSchemeError: If the destination scheme is not syslog-tls
            InvalidDestinationError: If the destination has no host or a bad port
            pydantic.ValidationError: If an option is invalid, the app_id is not a
                legal APP-NAME, or a configured TLS file does not exist
        """
        descriptor = validate_destination(destination)
        self.config = WriterConfig(
            destination=str(descriptor),
            app_id=app_id,
            tls_verify=verify,
            **options,
        )
        self.destination = descriptor
        self.logger = logging.getLogger(self.logger_name)
        self.tracer = get_tracer()
        self.hostname = self.config.hostname or socket.gethostname()

        self._trust_policy = self.config.trust_policy()
        self._ssl_context: Optional[ssl.SSLContext] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: WriterConfig) -> "TLSSyslogWriter":
        """Create a writer from an existing configuration."""
        options = config.model_dump(exclude={"destination", "app_id", "tls_verify"})
        return cls(config.destination, config.app_id, config.tls_verify, **options)

    @property
    def logger_name(self) -> str:
        return "ziggiz_courier_dropoff_syslog.protocol.tls"

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    def __repr__(self) -> str:
        return (
            f"TLSSyslogWriter(destination='{self.destination}', "
            f"app_id='{self.config.app_id}', connected={self.connected})"
        )

    def _peer_info(self) -> Dict[str, Any]:
        return {"net.peer.name": self.destination.host, "net.peer.port": self.destination.port}

    def _get_ssl_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            try:
                self._ssl_context = TLSContextBuilder.from_config(self.config)
            except (OSError, ssl.SSLError) as e:
                raise TLSHandshakeError(f"Cannot build TLS context: {e}") from e
        return self._ssl_context

    async def connect(self) -> None:
        """
        Open the TLS connection to the collector.

        A stream the peer has already dropped does not count as a connection;
        it is discarded and a new one is opened.

        Raises:
            AlreadyConnectedError: If the writer already holds a live connection
            TLSHandshakeError: If the handshake or certificate validation fails
            SyslogConnectionError: If the collector cannot be reached in time
        """
        async with self._lock:
            if self._writer is not None:
                if self.connected:
                    raise AlreadyConnectedError(
                        f"Writer is already connected to {self.destination}; close it first"
                    )
                stale, self._reader, self._writer = self._writer, None, None
                self.logger.debug(
                    "Discarding dropped TLS connection", extra=self._peer_info()
                )
                await self._close_stream(stale)

            host, port = self.destination.address
            peer_info = self._peer_info()

            with self.tracer.start_as_current_span(
                "syslog.tls.connect", attributes=peer_info
            ):
                context = self._get_ssl_context()
                try:
                    reader, writer = await asyncio.wait_for(
                        asyncio.open_connection(
                            host,
                            port,
                            ssl=context,
                            server_hostname=self.config.server_hostname or host,
                        ),
                        timeout=self.config.connect_timeout,
                    )
                except ssl.SSLError as e:
                    self.logger.warning(
                        "TLS handshake failed", extra={**peer_info, "error": str(e)}
                    )
                    raise TLSHandshakeError(
                        f"TLS handshake with {self.destination} failed: {e}"
                    ) from e
                except asyncio.TimeoutError as e:
                    raise SyslogConnectionError(
                        f"Timed out after {self.config.connect_timeout}s connecting to {self.destination}"
                    ) from e
                except OSError as e:
                    raise SyslogConnectionError(
                        f"Cannot connect to {self.destination}: {e}"
                    ) from e

                ssl_object = writer.get_extra_info("ssl_object")
                try:
                    self._trust_policy.check_peer(ssl_object)
                except TLSHandshakeError:
                    await self._close_stream(writer)
                    raise

            self._reader, self._writer = reader, writer
            self._log_connection(ssl_object, peer_info)

    def _log_connection(
        self, ssl_object: Optional[ssl.SSLObject], peer_info: Dict[str, Any]
    ) -> None:
        """Log TLS session and peer certificate details."""
        if not ssl_object:
            self.logger.info("TLS connection established", extra=peer_info)
            return

        cipher = ssl_object.cipher()
        self.logger.info(
            "TLS connection established",
            extra={
                **peer_info,
                "version": ssl_object.version(),
                "cipher": cipher[0] if cipher else "unknown",
                "trust_mode": self._trust_policy.mode.value,
            },
        )

        # Empty when verification is off; the parsed form needs a validated chain
        peer_cert = ssl_object.getpeercert()
        if peer_cert:
            subject = ", ".join(
                f"{name}={value}" for rdn in peer_cert.get("subject", ()) for name, value in rdn
            )
            issuer = ", ".join(
                f"{name}={value}" for rdn in peer_cert.get("issuer", ()) for name, value in rdn
            )
            self.logger.debug(
                "Collector certificate information",
                extra={
                    **peer_info,
                    "subject": subject,
                    "issuer": issuer,
                    "valid_from": peer_cert.get("notBefore", "unknown"),
                    "valid_to": peer_cert.get("notAfter", "unknown"),
                },
            )

    def format_frame(
        self,
        priority: int,
        message: bytes,
        source: str = "",
        source_id: str = "",
        timestamp: Optional[Timestamp] = None,
    ) -> bytes:
        """
        Build the octet-counted frame for one log record without sending it.

        Raises:
            ValueError: If the priority is out of range
            FramingError: If the message is larger than MAX_OCTET_COUNT (a ValueError)
            TypeError: If the timestamp is neither an int nor a datetime
        """
        syslog_message = format_rfc5424(
            priority=priority,
            message=message,
            timestamp=time.time_ns() if timestamp is None else timestamp,
            hostname=self.hostname,
            app_name=self.config.app_id,
            procid=build_procid(source, source_id),
        )
        return encode_octet_counted(syslog_message)

    async def write(
        self,
        priority: int,
        message: bytes,
        source: str = "",
        source_id: str = "",
        timestamp: Optional[Timestamp] = None,
    ) -> int:
        """
        Send one log record as one syslog frame.

        Args:
            priority: PRI value (facility * 8 + severity)
            message: The raw message body; newlines and arbitrary bytes are allowed
            source: Source name of the record, rendered into PROCID
            source_id: Optional source instance id, rendered into PROCID
            timestamp: Nanoseconds since the epoch or a datetime (default: now)

        Returns:
            The number of frame bytes handed to the transport

        Raises:
            NotConnectedError: If connect has not succeeded or close was called
            ValueError: If the priority is out of range, or the formatted message
                exceeds the 1 MiB frame limit (FramingError); nothing is written
            WriteError: If the transport fails while writing
        """
        async with self._lock:
            writer = self._writer
            if writer is None:
                raise NotConnectedError(
                    f"Writer for {self.destination} is not connected; call connect() first"
                )

            frame = self.format_frame(priority, message, source, source_id, timestamp)
            peer_info = self._peer_info()

            with self.tracer.start_as_current_span(
                "syslog.tls.write",
                attributes={**peer_info, "message.length": len(frame)},
            ):
                if writer.is_closing():
                    raise WriteError(f"Connection to {self.destination} is closed")
                try:
                    writer.write(frame)
                    if self.config.write_timeout:
                        await asyncio.wait_for(
                            writer.drain(), timeout=self.config.write_timeout
                        )
                    else:
                        await writer.drain()
                except ssl.SSLError as e:
                    raise WriteError(f"TLS error writing to {self.destination}: {e}") from e
                except asyncio.TimeoutError as e:
                    raise WriteError(
                        f"Timed out after {self.config.write_timeout}s writing to {self.destination}"
                    ) from e
                except (OSError, RuntimeError) as e:
                    raise WriteError(f"Cannot write to {self.destination}: {e}") from e

            self.logger.debug(
                "Syslog frame written",
                extra={**peer_info, "priority": priority, "bytes_written": len(frame)},
            )
            return len(frame)

    async def close(self) -> None:
        """
        Close the connection if one is open.

        Never raises for teardown failures; calling it again, or before any
        connect, does nothing.
        """
        async with self._lock:
            writer, self._reader, self._writer = self._writer, None, None
            if writer is None:
                return
            await self._close_stream(writer)
            self.logger.info("TLS connection closed", extra=self._peer_info())

    async def _close_stream(self, writer: asyncio.StreamWriter) -> None:
        """Best-effort close of a stream, bounded by the connect timeout."""
        try:
            writer.close()
            await asyncio.wait_for(
                writer.wait_closed(), timeout=self.config.connect_timeout
            )
        except Exception as e:
            self.logger.debug(
                "Error while closing TLS connection",
                extra={**self._peer_info(), "error": str(e)},
            )
