# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Case Lifecycle API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support, wires
the case engine to its store and notification emitter, and registers the
case and public feed endpoints.
"""

import os
import logging
from typing import Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from config import EngineSettings
from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.error_handler import ErrorHandlerMiddleware
from services.amqp import create_amqp_service
from services.case_engine import CaseEngine
from services.hal import create_hal_formatter
from services.mongodb import MongoDBService
from services.notifications import NotificationEmitter

logger = logging.getLogger(__name__)

# OpenAPI info
info = Info(
    title="Case Lifecycle API",
    version="1.0.0",
    description="Case submission, review, scheduling and public engagement with HATEOAS Level-3 support"
)

health_tag = Tag(name="Health", description="System health and status")


def create_app(
    settings: Optional[EngineSettings] = None,
    mongodb_service=None,
    amqp_service=None,
    emitter=None
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        settings: Engine settings; read from the environment when omitted
        mongodb_service: Case record store; a MongoDBService when omitted
        amqp_service: Optional AMQP service for notification hand-off
        emitter: Notification emitter; built over the store when omitted

    Returns:
        Configured OpenAPI application
    """
    settings = settings or EngineSettings.from_env()

    app = OpenAPI(__name__, info=info)

    # Environment configuration
    app.config['ENVIRONMENT'] = os.getenv('ENVIRONMENT', 'development')
    app.config['DEBUG'] = app.config['ENVIRONMENT'] == 'development'
    app.config['BASE_URL'] = settings.base_url

    add_observability_middleware(
        app,
        instrument=os.getenv('OTEL_ENABLED', 'true').lower() == 'true'
    )

    store = mongodb_service or MongoDBService(timeout_ms=settings.store_timeout_ms)
    if emitter is None:
        emitter = NotificationEmitter(store, amqp_service)

    hal_formatter = create_hal_formatter(settings.base_url)
    ErrorHandlerMiddleware(app, hal_formatter)

    # Make services available to routes
    app.mongodb_service = store
    app.amqp_service = amqp_service
    app.hal_formatter = hal_formatter
    app.case_engine = CaseEngine(store, settings, emitter=emitter)

    # Register routes
    from routes.cases import cases_bp
    from routes.public import public_bp

    app.register_api(cases_bp)
    app.register_api(public_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Report whether the case store is reachable."""
        store_health = app.mongodb_service.health_check()
        healthy = store_health.get('status') == 'healthy'

        body = {
            "status": "healthy" if healthy else "unhealthy",
            "service": "case-lifecycle-api",
            "environment": app.config['ENVIRONMENT'],
            "dependencies": {"mongodb": store_health}
        }
        if app.amqp_service is not None:
            body["dependencies"]["amqp"] = {
                "status": "healthy" if app.amqp_service.health_check() else "degraded"
            }

        return jsonify(body), 200 if healthy else 503

    logger.info(
        "Application configured",
        extra={
            "extra_fields": {
                "environment": app.config['ENVIRONMENT'],
                "auto_accept_submissions": settings.auto_accept_submissions,
                "allow_public_view": settings.allow_public_view
            }
        }
    )
    return app


def create_production_app() -> OpenAPI:
    """Build the application with tracing and the AMQP hand-off enabled."""
    setup_observability()
    amqp_service = None
    if os.getenv('AMQP_URL'):
        amqp_service = create_amqp_service()
        # Publishing to an undeclared exchange closes the channel
        if not amqp_service.setup_exchange():
            logger.warning(
                "Notification exchange not declared; email and push hand-off will fail until the broker is reachable",
                extra={"extra_fields": {"exchange": amqp_service.config.exchange}}
            )
    return create_app(amqp_service=amqp_service)


if __name__ == '__main__':
    # Development server
    app = create_production_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
