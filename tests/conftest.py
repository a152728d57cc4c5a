# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Pytest configuration file

# Standard library imports
import asyncio
import hashlib
import logging
import shutil
import socket
import ssl
import subprocess

from pathlib import Path
from typing import Dict, List, Optional, Set

# Third-party imports
import pytest
import pytest_asyncio

# Local/package imports
from ziggiz_courier_dropoff_syslog.protocol.framing import FramingDecoder
from ziggiz_courier_dropoff_syslog.protocol.framing_common import FramingMode

CA_CONFIG = """
[req]
distinguished_name = dn
prompt = no
x509_extensions = v3_ca

[dn]
CN = Ziggiz Test CA

[v3_ca]
basicConstraints = critical, CA:TRUE
keyUsage = critical, keyCertSign, cRLSign
subjectKeyIdentifier = hash
authorityKeyIdentifier = keyid:always
"""

SERVER_REQ_CONFIG = """
[req]
distinguished_name = dn
prompt = no

[dn]
CN = localhost
"""

SERVER_EXT_CONFIG = """
[v3_server]
basicConstraints = critical, CA:FALSE
keyUsage = critical, digitalSignature, keyEncipherment
extendedKeyUsage = serverAuth
subjectAltName = DNS:localhost, IP:127.0.0.1
subjectKeyIdentifier = hash
authorityKeyIdentifier = keyid
"""


# Define test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark a test as an integration test"
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    # Reset root logger after each test
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)  # Default level


def _openssl(*args: str, cwd: Path) -> None:
    result = subprocess.run(
        ["openssl", *args], cwd=cwd, stdout=subprocess.PIPE, stderr=subprocess.PIPE
    )
    if result.returncode != 0:
        raise RuntimeError(f"openssl {args[0]} failed: {result.stderr.decode()}")


@pytest.fixture(scope="session")
def tls_certificates(tmp_path_factory) -> Dict[str, str]:
    """
    Generate a throwaway CA and a server certificate for localhost / 127.0.0.1.

    The CA is not in the system trust store, so the server certificate is
    untrusted unless the CA bundle is passed explicitly.
    """
    if shutil.which("openssl") is None:
        pytest.skip("openssl command line tool is not available")

    cert_dir = tmp_path_factory.mktemp("certs")
    (cert_dir / "ca.cnf").write_text(CA_CONFIG)
    (cert_dir / "server_req.cnf").write_text(SERVER_REQ_CONFIG)
    (cert_dir / "server_ext.cnf").write_text(SERVER_EXT_CONFIG)

    _openssl(
        "req", "-x509", "-newkey", "rsa:2048", "-nodes", "-sha256",
        "-keyout", "ca.key", "-out", "ca.pem", "-days", "2", "-config", "ca.cnf",
        cwd=cert_dir,
    )
    _openssl(
        "req", "-new", "-newkey", "rsa:2048", "-nodes",
        "-keyout", "server.key", "-out", "server.csr", "-config", "server_req.cnf",
        cwd=cert_dir,
    )
    _openssl(
        "x509", "-req", "-in", "server.csr", "-CA", "ca.pem", "-CAkey", "ca.key",
        "-set_serial", "2", "-days", "2", "-sha256", "-out", "server.pem",
        "-extfile", "server_ext.cnf", "-extensions", "v3_server",
        cwd=cert_dir,
    )

    server_der = ssl.PEM_cert_to_DER_cert((cert_dir / "server.pem").read_text())
    return {
        "ca_certs": str(cert_dir / "ca.pem"),
        "certfile": str(cert_dir / "server.pem"),
        "keyfile": str(cert_dir / "server.key"),
        "fingerprint": hashlib.sha256(server_der).hexdigest(),
    }


class TLSCollector:
    """Minimal accept-and-record TLS syslog collector for tests."""

    def __init__(self, certfile: str, keyfile: str):
        self.context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        self.context.load_cert_chain(certfile=certfile, keyfile=keyfile)
        self.host = "127.0.0.1"
        self.port: Optional[int] = None
        self.received = bytearray()
        self.connections = 0
        self.closed_connections = 0
        self._server: Optional[asyncio.AbstractServer] = None
        self._writers: Set[asyncio.StreamWriter] = set()

    @property
    def url(self) -> str:
        return f"syslog-tls://{self.host}:{self.port}"

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle, self.host, 0, ssl=self.context
        )
        self.port = self._server.sockets[0].getsockname()[1]

    def drop_connections(self) -> None:
        """Close every accepted connection but keep listening."""
        for writer in list(self._writers):
            writer.close()

    async def stop(self) -> None:
        self.drop_connections()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def _handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self.connections += 1
        self._writers.add(writer)
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                self.received.extend(data)
        except (ConnectionError, ssl.SSLError):
            pass
        finally:
            self._writers.discard(writer)
            self.closed_connections += 1
            writer.close()

    async def wait_for_bytes(self, count: int, timeout: float = 2.0) -> None:
        deadline = asyncio.get_running_loop().time() + timeout
        while len(self.received) < count:
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError(
                    f"Collector received {len(self.received)} bytes, expected {count}"
                )
            await asyncio.sleep(0.01)

    def frames(self) -> List[bytes]:
        return FramingDecoder(FramingMode.TRANSPARENT).feed(bytes(self.received))


@pytest_asyncio.fixture
async def tls_collector(tls_certificates):
    """Run a TLS collector on an ephemeral localhost port for one test."""
    collector = TLSCollector(tls_certificates["certfile"], tls_certificates["keyfile"])
    await collector.start()
    yield collector
    await collector.stop()


@pytest.fixture
def unused_tcp_port_url() -> str:
    """A syslog-tls URL pointing at a localhost port nothing listens on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"syslog-tls://127.0.0.1:{port}"
