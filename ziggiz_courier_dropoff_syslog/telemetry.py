# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2025 Ziggiz Inc.
#
# This file is part of the ziggiz-courier-core-data-processing and is licensed under the
# Business Source License 1.1. You may not use this file except in
# compliance with the License. You may obtain a copy of the License at:
# https://github.com/ziggiz-courier/ziggiz-courier-core-data-processing/blob/main/LICENSE
# OpenTelemetry setup for Ziggiz Courier Dropoff Syslog
#
# The library only asks for a tracer; spans go nowhere until an application installs
# a tracer provider. configure_tracing() installs one that exports to the console,
# which is what the command line entry point uses.

# Third-party imports
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

SERVICE_NAME = "ziggiz-courier-dropoff-syslog"


def configure_tracing() -> TracerProvider:
    """
    Install a global tracer provider that exports spans to the console.

    Replace ConsoleSpanExporter with an OTLP exporter for production use.
    """
    resource = Resource.create({"service.name": SERVICE_NAME})
    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tracer_provider)
    return tracer_provider


def get_tracer() -> Tracer:
    return trace.get_tracer(SERVICE_NAME)
