# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# RFC 5424 message formatting and parsing
#
# The writer only needs format_rfc5424; parse_rfc5424 is the matching reader used by
# collectors in tests and by anyone checking what went over the wire.

# Standard library imports
import re

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, Union

# Third-party imports
from pydantic import BaseModel

# Constants
NILVALUE = "-"
RFC5424_VERSION = 1
MAX_PRIORITY = 191  # facility 23, severity 7
HOSTNAME_MAX_LENGTH = 255
APP_NAME_MAX_LENGTH = 48
PROCID_MAX_LENGTH = 128
MSGID_MAX_LENGTH = 32

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_HEADER_PATTERN = re.compile(
    rb"^<(?P<pri>\d{1,3})>(?P<ver>[1-9]\d?) (?P<timestamp>\S+) (?P<hostname>\S+) "
    rb"(?P<app_name>\S+) (?P<procid>\S+) (?P<msgid>\S+) "
)

Timestamp = Union[int, datetime]


class SyslogMessage(BaseModel):
    """
    A decoded RFC 5424 syslog message.

    Attributes:
        priority (int): PRI value (facility * 8 + severity).
        version (int): Protocol version, always 1 for RFC 5424.
        timestamp (Optional[datetime]): Message time, None for NILVALUE.
        hostname (str): HOSTNAME header field.
        app_name (str): APP-NAME header field.
        procid (str): PROCID header field.
        msgid (str): MSGID header field.
        structured_data (str): STRUCTURED-DATA, "-" when absent.
        message (bytes): The MSG part, byte for byte.
    """

    priority: int
    version: int = RFC5424_VERSION
    timestamp: Optional[datetime] = None
    hostname: str = NILVALUE
    app_name: str = NILVALUE
    procid: str = NILVALUE
    msgid: str = NILVALUE
    structured_data: str = NILVALUE
    message: bytes = b""

    @property
    def facility(self) -> int:
        return self.priority >> 3

    @property
    def severity(self) -> int:
        return self.priority & 0x07


class SyslogParseError(ValueError):
    """
    Exception raised when bytes cannot be parsed as an RFC 5424 message.
    """


def validate_priority(priority: int) -> int:
    """
    Check that a priority is a PRI value in 0..191.

    Raises:
        ValueError: If the priority is not an int or is out of range
    """
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValueError(f"Syslog priority must be an integer, got {priority!r}")
    if not 0 <= priority <= MAX_PRIORITY:
        raise ValueError(
            f"Syslog priority {priority} is out of range (0..{MAX_PRIORITY})"
        )
    return priority


def format_timestamp(timestamp: Timestamp) -> str:
    """
    Render a timestamp as an RFC 3339 UTC string with microsecond precision.

    Args:
        timestamp: Nanoseconds since the Unix epoch, or a datetime (naive values are taken as UTC)

    Returns:
        A string such as ``2015-06-01T12:00:00.123456+00:00``
    """
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            moment = timestamp.replace(tzinfo=timezone.utc)
        else:
            moment = timestamp.astimezone(timezone.utc)
    elif isinstance(timestamp, int) and not isinstance(timestamp, bool):
        seconds, nanos = divmod(timestamp, 1_000_000_000)
        moment = _EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)
    else:
        raise TypeError(
            f"Timestamp must be nanoseconds (int) or a datetime, got {type(timestamp).__name__}"
        )
    return moment.isoformat(timespec="microseconds")


def header_field(value: Optional[str], max_length: int) -> str:
    """
    Sanitize a header field: printable US-ASCII only, no spaces, bounded length.

    Characters outside 33..126 are replaced with "_". Empty values become NILVALUE.
    """
    if not value:
        return NILVALUE
    cleaned = "".join(ch if 33 <= ord(ch) <= 126 else "_" for ch in value)
    return cleaned[:max_length]


def build_procid(source: Optional[str], source_id: Optional[str] = None) -> str:
    """
    Build the PROCID field from the record's source name and source id.

    Returns "[source/source_id]", "[source]" when there is no source id,
    or NILVALUE when there is no source at all.
    """
    if not source:
        return NILVALUE
    if source_id:
        return header_field(f"[{source}/{source_id}]", PROCID_MAX_LENGTH)
    return header_field(f"[{source}]", PROCID_MAX_LENGTH)


def format_rfc5424(
    priority: int,
    message: bytes,
    timestamp: Timestamp,
    hostname: Optional[str] = None,
    app_name: Optional[str] = None,
    procid: Optional[str] = None,
    msgid: Optional[str] = None,
) -> bytes:
    """
    Format an RFC 5424 message: ``<PRI>1 TIMESTAMP HOSTNAME APP-NAME PROCID MSGID - MSG``.

    The header is ASCII; the message body is appended unmodified. Structured
    data is always NILVALUE.

    Args:
        priority: PRI value (facility * 8 + severity)
        message: The raw message body
        timestamp: Nanoseconds since the epoch or a datetime
        hostname: HOSTNAME field
        app_name: APP-NAME field
        procid: PROCID field, already built (see build_procid)
        msgid: MSGID field

    Returns:
        The encoded message, without transport framing
    """
    validate_priority(priority)
    if isinstance(message, str):
        message = message.encode("utf-8")

    header = "<{}>{} {} {} {} {} {} {}".format(
        priority,
        RFC5424_VERSION,
        format_timestamp(timestamp),
        header_field(hostname, HOSTNAME_MAX_LENGTH),
        header_field(app_name, APP_NAME_MAX_LENGTH),
        header_field(procid, PROCID_MAX_LENGTH),
        header_field(msgid, MSGID_MAX_LENGTH),
        NILVALUE,
    )
    return header.encode("ascii") + b" " + bytes(message)


def _split_structured_data(data: bytes) -> Tuple[bytes, bytes]:
    """Split ``STRUCTURED-DATA [SP MSG]`` into its two parts."""
    if data.startswith(b"-"):
        return b"-", data[1:]
    if not data.startswith(b"["):
        raise SyslogParseError("Structured data must be '-' or start with '['")

    pos = 0
    while pos < len(data) and data[pos : pos + 1] == b"[":
        pos += 1
        in_quotes = False
        while pos < len(data):
            char = data[pos : pos + 1]
            if char == b"\\" and in_quotes:
                pos += 2
                continue
            if char == b'"':
                in_quotes = not in_quotes
            elif char == b"]" and not in_quotes:
                break
            pos += 1
        if pos >= len(data):
            raise SyslogParseError("Unterminated structured data element")
        pos += 1
    return data[:pos], data[pos:]


def parse_rfc5424(data: bytes) -> SyslogMessage:
    """
    Parse an RFC 5424 message (without transport framing).

    Args:
        data: The raw message bytes

    Returns:
        The decoded SyslogMessage; the body is returned exactly as received

    Raises:
        SyslogParseError: If the header or structured data is malformed
    """
    match = _HEADER_PATTERN.match(data)
    if not match:
        raise SyslogParseError("Data does not start with an RFC 5424 header")

    priority = int(match.group("pri"))
    if priority > MAX_PRIORITY:
        raise SyslogParseError(f"Priority {priority} is out of range")

    structured_data, rest = _split_structured_data(data[match.end() :])
    if rest and not rest.startswith(b" "):
        raise SyslogParseError("Expected a space between structured data and message")

    raw_timestamp = match.group("timestamp").decode("ascii", errors="replace")
    timestamp = None
    if raw_timestamp != NILVALUE:
        try:
            timestamp = datetime.fromisoformat(raw_timestamp.replace("Z", "+00:00"))
        except ValueError as e:
            raise SyslogParseError(f"Invalid timestamp '{raw_timestamp}'") from e

    return SyslogMessage(
        priority=priority,
        version=int(match.group("ver")),
        timestamp=timestamp,
        hostname=match.group("hostname").decode("ascii", errors="replace"),
        app_name=match.group("app_name").decode("ascii", errors="replace"),
        procid=match.group("procid").decode("ascii", errors="replace"),
        msgid=match.group("msgid").decode("ascii", errors="replace"),
        structured_data=structured_data.decode("utf-8", errors="replace"),
        message=rest[1:],
    )
