# -*- coding: utf-8 -*-

# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# Main entry point for sending syslog messages to a TLS collector

# Standard library imports
import argparse
import asyncio
import logging
import sys

from typing import Iterable, List, Optional

# Third-party imports
from pydantic import ValidationError

# Local/package imports
from ziggiz_courier_dropoff_syslog.config import (
    WriterConfig,
    configure_logging,
    load_config,
)
from ziggiz_courier_dropoff_syslog.errors import SyslogWriterError
from ziggiz_courier_dropoff_syslog.protocol.tls import TLSSyslogWriter
from ziggiz_courier_dropoff_syslog.telemetry import configure_tracing

DEFAULT_PRIORITY = 14  # user.info


def setup_logging(log_level: str = "INFO", config: Optional[WriterConfig] = None) -> None:
    """
    Configure logging with appropriate formatters and handlers.

    Args:
        log_level: The logging level to set (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        config: Optional configuration object to use for logging setup
    """
    if config:
        # Use the configuration-based logging setup
        configure_logging(config)
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    # Create a formatter with timestamp, level, and logger name
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Configure the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Add console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def read_messages(lines: Iterable[bytes]) -> List[bytes]:
    """Turn input lines into message bodies, dropping line endings and blank lines."""
    messages = []
    for line in lines:
        body = line.rstrip(b"\r\n")
        if body:
            messages.append(body)
    return messages


async def send_messages(
    config: WriterConfig,
    messages: Iterable[bytes],
    priority: int = DEFAULT_PRIORITY,
    source: str = "",
    source_id: str = "",
) -> int:
    """
    Connect to the collector, send every message as one frame, then close.

    Args:
        config: The writer configuration
        messages: Message bodies to send
        priority: PRI value applied to every message
        source: Source name rendered into PROCID
        source_id: Source id rendered into PROCID

    Returns:
        The total number of bytes written

    Raises:
        SyslogWriterError: On the first connect or write failure
    """
    logger = logging.getLogger("ziggiz_courier_dropoff_syslog.main")
    total = 0
    sent = 0

    async with TLSSyslogWriter.from_config(config) as writer:
        for message in messages:
            total += await writer.write(priority, message, source, source_id)
            sent += 1

    logger.info(
        "Messages delivered",
        extra={"destination": config.destination, "count": sent, "bytes": total},
    )
    return total


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ziggiz Courier Syslog Dropoff: send messages to a syslog-tls collector"
    )
    parser.add_argument("messages", nargs="*", help="Messages to send (default: read stdin)")
    parser.add_argument("--config", type=str, help="Path to configuration file")
    parser.add_argument(
        "--destination",
        type=str,
        help="Collector URL, e.g. syslog-tls://collector:6514 (overrides config file)",
    )
    parser.add_argument(
        "--app-id", type=str, help="Application identifier (overrides config file)"
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip certificate chain and host name verification",
    )
    parser.add_argument(
        "--ca-certs", type=str, help="Extra CA bundle to trust (overrides config file)"
    )
    parser.add_argument(
        "--pin",
        type=str,
        help="SHA-256 fingerprint of the collector certificate (implies --insecure)",
    )
    parser.add_argument(
        "--hostname", type=str, help="HOSTNAME header value (overrides config file)"
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        help="Connect timeout in seconds (overrides config file)",
    )
    parser.add_argument(
        "--priority",
        type=int,
        default=DEFAULT_PRIORITY,
        help=f"Syslog priority for every message (default: {DEFAULT_PRIORITY})",
    )
    parser.add_argument("--source", type=str, default="", help="Source name for PROCID")
    parser.add_argument("--source-id", type=str, default="", help="Source id for PROCID")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides config file)",
    )
    parser.add_argument(
        "--trace", action="store_true", help="Export OpenTelemetry spans to the console"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the syslog dropoff command.
    Parses command-line arguments, sets up logging, and sends the messages.
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(
            args.config,
            destination=args.destination,
            app_id=args.app_id,
            tls_verify=False if (args.insecure or args.pin) else None,
            tls_ca_certs=args.ca_certs,
            tls_pinned_fingerprint=args.pin,
            hostname=args.hostname,
            connect_timeout=args.connect_timeout,
            log_level=args.log_level,
        )
    except (FileNotFoundError, ValidationError) as e:
        if not logging.root.handlers:
            setup_logging("ERROR")
        logging.getLogger("ziggiz_courier_dropoff_syslog.main").error(
            f"Invalid configuration: {e}"
        )
        sys.exit(1)

    setup_logging(config=config)
    logger = logging.getLogger("ziggiz_courier_dropoff_syslog.main")

    if args.trace:
        configure_tracing()

    messages = [m.encode("utf-8") for m in args.messages] or read_messages(
        sys.stdin.buffer
    )

    try:
        asyncio.run(
            send_messages(
                config,
                messages,
                priority=args.priority,
                source=args.source,
                source_id=args.source_id,
            )
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except (SyslogWriterError, ValueError) as e:
        logger.error(f"Failed to deliver messages: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
