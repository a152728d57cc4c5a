# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Trust policies for validating the collector's TLS certificate

# Standard library imports
import hashlib
import hmac
import logging
import re
import ssl

from enum import Enum
from typing import Optional

# Local/package imports
from ziggiz_courier_dropoff_syslog.errors import TLSHandshakeError

_FINGERPRINT_PATTERN = re.compile(r"^[0-9a-f]{64}$")


class TrustMode(Enum):
    """Enumeration of the ways a peer certificate can be trusted."""

    VERIFY = "verify"
    SKIP = "skip"
    PIN = "pin"


def normalize_fingerprint(fingerprint: str) -> str:
    """
    Normalize a SHA-256 fingerprint to 64 lower-case hex characters.

    Accepts the colon-separated form printed by ``openssl x509 -fingerprint``.

    Raises:
        ValueError: If the value is not a SHA-256 fingerprint
    """
    normalized = fingerprint.replace(":", "").strip().lower()
    if not _FINGERPRINT_PATTERN.match(normalized):
        raise ValueError(f"Invalid SHA-256 fingerprint: {fingerprint}")
    return normalized


class TrustPolicy:
    """
    Decides how the peer certificate presented by the collector is trusted.

    VERIFY validates the chain against the system store (plus an optional CA
    bundle) and checks the host name. SKIP accepts any certificate but still
    performs the TLS handshake. PIN accepts exactly one leaf certificate,
    identified by its SHA-256 fingerprint.
    """

    def __init__(
        self,
        mode: TrustMode = TrustMode.VERIFY,
        ca_certs: Optional[str] = None,
        fingerprint: Optional[str] = None,
    ):
        """
        Initialize the trust policy.

        Args:
            mode: How the peer certificate is trusted
            ca_certs: Extra CA bundle to trust in VERIFY mode
            fingerprint: SHA-256 fingerprint of the leaf certificate in PIN mode
        """
        self.logger = logging.getLogger("ziggiz_courier_dropoff_syslog.protocol.trust")
        self.mode = mode
        self.ca_certs = ca_certs
        self.fingerprint = None

        if mode == TrustMode.PIN:
            if not fingerprint:
                raise ValueError("A fingerprint is required for the PIN trust mode")
            self.fingerprint = normalize_fingerprint(fingerprint)

    @classmethod
    def verify(cls, ca_certs: Optional[str] = None) -> "TrustPolicy":
        return cls(TrustMode.VERIFY, ca_certs=ca_certs)

    @classmethod
    def skip(cls) -> "TrustPolicy":
        return cls(TrustMode.SKIP)

    @classmethod
    def pin(cls, fingerprint: str) -> "TrustPolicy":
        return cls(TrustMode.PIN, fingerprint=fingerprint)

    def __repr__(self) -> str:
        """Return a string representation of the policy."""
        return (
            f"TrustPolicy(mode={self.mode.value}, ca_certs={self.ca_certs!r}, "
            f"fingerprint={self.fingerprint!r})"
        )

    def apply(self, context: ssl.SSLContext) -> None:
        """
        Configure a client SSL context for this policy.

        Args:
            context: The context to configure, created for SERVER_AUTH
        """
        if self.mode == TrustMode.VERIFY:
            context.check_hostname = True
            context.verify_mode = ssl.CERT_REQUIRED
            if self.ca_certs:
                context.load_verify_locations(cafile=self.ca_certs)
        else:
            # check_hostname must be cleared before verify_mode can drop to CERT_NONE
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

    def check_peer(self, ssl_object: Optional[ssl.SSLObject]) -> None:
        """
        Check the peer certificate after the handshake.

        Only PIN mode has work to do here; chain validation for VERIFY mode
        already happened inside the handshake.

        Args:
            ssl_object: The SSL object of the established connection

        Raises:
            TLSHandshakeError: If the peer certificate does not match the pin
        """
        if self.mode != TrustMode.PIN:
            return

        peer_cert = ssl_object.getpeercert(binary_form=True) if ssl_object else None
        if not peer_cert:
            raise TLSHandshakeError("Peer did not present a certificate to pin against")

        actual = hashlib.sha256(peer_cert).hexdigest()
        if not hmac.compare_digest(actual, self.fingerprint):
            self.logger.warning(
                "Peer certificate fingerprint mismatch",
                extra={"expected": self.fingerprint, "actual": actual},
            )
            raise TLSHandshakeError(
                f"Peer certificate fingerprint {actual} does not match the pinned fingerprint"
            )
