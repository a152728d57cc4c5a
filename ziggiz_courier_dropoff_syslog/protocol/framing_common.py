# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Shared framing definitions used by the encoder and the decoder

# Standard library imports
from enum import Enum

# Constants
DEFAULT_END_OF_MSG_MARKER = b"\n"
DEFAULT_MAX_MSG_LENGTH = 16 * 1024  # 16 KiB
MAX_OCTET_COUNT = 1024 * 1024  # 1 MiB per frame


class FramingMode(Enum):
    """
    Enumeration for the syslog message framing mode.

    Values:
        AUTO: Detect framing per frame (octet counting when a length prefix is present).
        TRANSPARENT: Octet-counting framing (RFC 6587 3.4.1, each message prefixed with length).
        NON_TRANSPARENT: Delimiter-based framing (e.g., newline or custom marker).
    """

    AUTO = "auto"
    TRANSPARENT = "transparent"
    NON_TRANSPARENT = "non_transparent"


class FramingError(ValueError):
    """
    Exception raised when a frame cannot be built or decoded.
    """
