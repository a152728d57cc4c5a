# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Abstract base class for syslog writers

# Standard library imports
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Optional, Type

# Local/package imports
from ziggiz_courier_dropoff_syslog.protocol.message import Timestamp


class BaseSyslogWriter(ABC):
    """
    Abstract base class for syslog writers.

    A writer owns one connection to one destination. Callers connect, issue
    any number of writes, then close. Writers never reconnect or retry on
    their own; every failure is raised to the caller.
    """

    @property
    @abstractmethod
    def logger_name(self) -> str:
        """Return the logger name for this writer."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Return True while the writer holds a live connection."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection to the destination."""

    @abstractmethod
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

        Returns:
            The number of bytes written to the transport
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call at any time, any number of times."""

    async def __aenter__(self) -> "BaseSyslogWriter":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.close()
