# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Actor context middleware.

Authentication happens at the upstream gateway, which forwards the
authenticated identity in request headers. This module turns those headers
into an ActorContext for the route handlers.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Callable
from opentelemetry import trace
import logging

from models.entities import ActorContext
from models.enums import ActorRole

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"
ACTOR_VERIFIED_HEADER = "X-Actor-Verified"
ACTOR_NAME_HEADER = "X-Actor-Name"


def _parse_role(value: str) -> ActorRole:
    if not value:
        return ActorRole.USER
    try:
        return ActorRole(value.strip().lower())
    except ValueError:
        logger.warning(
            "Unknown actor role header, treating as user",
            extra={"extra_fields": {"role": value}}
        )
        return ActorRole.USER


def actor_from_request() -> ActorContext:
    """
    Build the actor context from gateway headers.

    Returns:
        ActorContext; ``actor_id`` is None for anonymous callers
    """
    actor_id = (request.headers.get(ACTOR_ID_HEADER) or "").strip() or None
    verified = (request.headers.get(ACTOR_VERIFIED_HEADER) or "").strip().lower() in ("1", "true", "yes")

    return ActorContext(
        actor_id=actor_id,
        role=_parse_role(request.headers.get(ACTOR_ROLE_HEADER)) if actor_id else ActorRole.USER,
        verified=verified if actor_id else False,
        name=request.headers.get(ACTOR_NAME_HEADER),
        ip_address=request.remote_addr,
        user_agent=request.headers.get('User-Agent', '')
    )


def require_actor(f: Callable) -> Callable:
    """
    Decorator requiring an authenticated actor.

    The route receives the ActorContext as its first argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = actor_from_request()
        span = trace.get_current_span()

        if not actor.is_authenticated():
            span.set_attribute("auth.result", "missing_actor")
            logger.warning(
                "Request without actor identity",
                extra={"extra_fields": {"path": request.path, "method": request.method}}
            )
            body = current_app.hal_formatter.format_error(
                "authentication-required",
                401,
                "Missing actor identity",
                request.path
            )
            return body, 401, {"Content-Type": "application/problem+json"}

        g.actor = actor
        span.set_attributes({
            "auth.result": "success",
            "actor.id": actor.actor_id,
            "actor.role": actor.role
        })
        return f(actor, *args, **kwargs)

    return decorated_function


def optional_actor(f: Callable) -> Callable:
    """
    Decorator for routes open to anonymous callers.

    The route receives the ActorContext (possibly anonymous) as its first argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = actor_from_request()
        g.actor = actor
        return f(actor, *args, **kwargs)

    return decorated_function
