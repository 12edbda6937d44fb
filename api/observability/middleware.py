# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Observability Middleware

Flask middleware for adding OpenTelemetry instrumentation and structured logging
to all case API requests.
"""

import time
import uuid
import logging
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-Id'
QUIET_PATHS = ('/api/healthz',)


def add_observability_middleware(app: Flask, instrument: bool = True):
    """
    Add OpenTelemetry instrumentation and request logging to a Flask app.

    Args:
        app: Flask application
        instrument: Whether to auto-instrument with FlaskInstrumentor
    """
    if instrument:
        FlaskInstrumentor().instrument_app(app, excluded_urls=",".join(QUIET_PATHS))

    @app.before_request
    def before_request():
        """Set up request context and start timing."""
        g.start_time = time.time()
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        g.trace_id = None

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")
            span.set_attributes({
                "http.request_id": g.request_id,
                "http.target": request.path,
                "http.user_agent": request.headers.get("User-Agent", ""),
            })

    @app.after_request
    def after_request(response):
        """Log request completion and add response attributes to span."""
        duration_ms = round((time.time() - g.get('start_time', time.time())) * 1000, 2)
        actor = g.get('actor')

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attributes({
                "http.status_code": response.status_code,
                "http.duration_ms": duration_ms
            })

        if request.path not in QUIET_PATHS:
            logger.info(
                "HTTP request completed",
                extra={
                    "extra_fields": {
                        "method": request.method,
                        "path": request.path,
                        "status_code": response.status_code,
                        "duration_ms": duration_ms,
                        "request_id": g.get('request_id'),
                        "actor_id": actor.actor_id if actor is not None else None,
                        "trace_id": g.get('trace_id'),
                        "request_size": request.content_length or 0,
                        "response_size": response.content_length
                    }
                }
            )

        response.headers[REQUEST_ID_HEADER] = g.get('request_id', '')
        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        return response
