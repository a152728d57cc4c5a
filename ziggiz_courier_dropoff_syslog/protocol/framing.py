# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Octet-counting framing for syslog over stream transports

# Standard library imports
import logging
import re

from typing import List, Optional

# Local/package imports
from ziggiz_courier_dropoff_syslog.protocol.framing_common import (
    DEFAULT_END_OF_MSG_MARKER,
    DEFAULT_MAX_MSG_LENGTH,
    MAX_OCTET_COUNT,
    FramingError,
    FramingMode,
)


def encode_octet_counted(message: bytes) -> bytes:
    """
    Frame a message with RFC 6587 octet counting: ``MSG-LEN SP SYSLOG-MSG``.

    Args:
        message: The complete syslog message

    Returns:
        The framed bytes, ready to be written to the stream

    Raises:
        FramingError: If the message is empty or larger than MAX_OCTET_COUNT
    """
    if not message:
        raise FramingError("Cannot frame an empty syslog message")
    if len(message) > MAX_OCTET_COUNT:
        raise FramingError(
            f"Syslog message of {len(message)} bytes exceeds the {MAX_OCTET_COUNT} byte frame limit"
        )
    return b"%d %s" % (len(message), message)


class FramingDecoder:
    """
    Incremental decoder that splits a syslog byte stream into messages.

    Supports transparent (octet-counting), non-transparent (delimiter-based)
    and auto-detected framing. In AUTO mode each frame is inspected on its own,
    so a stream may mix both styles.
    """

    def __init__(
        self,
        framing_mode: FramingMode = FramingMode.AUTO,
        end_of_msg_marker: bytes = DEFAULT_END_OF_MSG_MARKER,
        max_msg_length: int = DEFAULT_MAX_MSG_LENGTH,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the framing decoder.

        Args:
            framing_mode: The framing mode to use
            end_of_msg_marker: The marker indicating end of message for non-transparent framing
            max_msg_length: Maximum message length for non-transparent framing
            logger: Logger instance
        """
        self.framing_mode = framing_mode
        self.end_of_msg_marker = end_of_msg_marker
        self.max_msg_length = max_msg_length
        self.logger = logger or logging.getLogger(
            "ziggiz_courier_dropoff_syslog.protocol.framing"
        )
        self._buffer = bytearray()

        # Length prefix: [1-9] followed by up to 6 digits, then a space
        self._octet_count_pattern = re.compile(b"^([1-9][0-9]{0,6}) ")

    def feed(self, data: bytes) -> List[bytes]:
        """
        Add data to the buffer and return every message that is now complete.

        Args:
            data: Bytes received from the stream

        Returns:
            The complete messages, in stream order
        """
        self._buffer.extend(data)
        return self.extract_messages()

    def extract_messages(self) -> List[bytes]:
        """
        Extract complete messages from the buffer.

        Returns:
            A list of complete messages extracted from the buffer

        Raises:
            FramingError: If the buffer holds an invalid frame in TRANSPARENT mode
        """
        messages = []
        while self._buffer:
            message = self._extract_one()
            if message is None:
                break
            messages.append(message)
        return messages

    def _extract_one(self) -> Optional[bytes]:
        if self.framing_mode == FramingMode.TRANSPARENT:
            return self._extract_transparent()
        if self.framing_mode == FramingMode.NON_TRANSPARENT:
            return self._extract_non_transparent()

        if self._looks_octet_counted():
            return self._extract_transparent()
        if self._buffer[:1].isdigit() and b" " not in self._buffer[:8]:
            # Could still be a length prefix that has not fully arrived
            if self.end_of_msg_marker not in self._buffer:
                return None
        return self._extract_non_transparent()

    def _looks_octet_counted(self) -> bool:
        return self._octet_count_pattern.match(self._buffer) is not None

    def _extract_transparent(self) -> Optional[bytes]:
        match = self._octet_count_pattern.match(self._buffer)
        if not match:
            if len(self._buffer) < 8 and self._buffer.isdigit():
                return None
            raise FramingError("Invalid transparent framing format")

        octet_count = int(match.group(1))
        if octet_count > MAX_OCTET_COUNT:
            raise FramingError(f"Invalid octet count: {octet_count}")

        header_length = match.end()
        total_length = header_length + octet_count
        if len(self._buffer) < total_length:
            self.logger.debug(
                "Partial frame buffered",
                extra={"have": len(self._buffer), "need": total_length},
            )
            return None

        message = bytes(self._buffer[header_length:total_length])
        del self._buffer[:total_length]
        return message

    def _extract_non_transparent(self) -> Optional[bytes]:
        marker_pos = self._buffer.find(self.end_of_msg_marker)

        if marker_pos == -1 or marker_pos > self.max_msg_length:
            if len(self._buffer) >= self.max_msg_length:
                message = bytes(self._buffer[: self.max_msg_length])
                del self._buffer[: self.max_msg_length]
                self.logger.warning(
                    f"Message truncated at max length ({self.max_msg_length} bytes)"
                )
                return message
            return None

        message = bytes(self._buffer[:marker_pos])
        del self._buffer[: marker_pos + len(self.end_of_msg_marker)]
        return message

    def reset(self) -> None:
        """Discard any buffered data."""
        self._buffer.clear()

    @property
    def buffer_size(self) -> int:
        """Get the current size of the buffer."""
        return len(self._buffer)
