# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for middleware components.

Covers problem rendering in the error handler, the actor header
decorators and the structured log formatter.
"""

import json
import logging
import sys
import pytest
from flask import Flask, g, jsonify
from pydantic import BaseModel

from domain.errors import (
    ConflictingStateException, ForbiddenException, NotFoundException,
    StoreUnavailableException, ValidationException
)
from middleware.actor import actor_from_request, optional_actor, require_actor
from middleware.error_handler import ErrorHandlerMiddleware, PROBLEM_JSON
from observability.config import StructuredFormatter
from services.hal import HalFormatter


class Strict(BaseModel):
    count: int


@pytest.fixture
def bare_app():
    """Flask app with only the error handler and actor decorators."""
    app = Flask(__name__)
    app.config['ENVIRONMENT'] = 'test'
    app.hal_formatter = HalFormatter("http://localhost:5000")
    ErrorHandlerMiddleware(app, app.hal_formatter)

    @app.route('/raise/<kind>')
    def raise_error(kind):
        errors = {
            "validation": ValidationException("title is required", [{"field": "title", "message": "Required"}]),
            "forbidden": ForbiddenException("not yours"),
            "missing": NotFoundException("no such case"),
            "conflict": ConflictingStateException("already closed", "closed"),
            "store": StoreUnavailableException("store timed out"),
        }
        if kind == "pydantic":
            Strict.model_validate({"count": "many"})
        if kind == "boom":
            raise RuntimeError("kaboom")
        raise errors[kind]

    @app.route('/whoami')
    @require_actor
    def whoami(actor):
        return jsonify(actor.model_dump())

    @app.route('/maybe')
    @optional_actor
    def maybe(actor):
        return jsonify({"authenticated": actor.is_authenticated(), "g": g.actor.actor_id})

    return app


class TestErrorHandlerMiddleware:
    """Test problem responses for engine and framework errors."""

    @pytest.mark.parametrize("kind,status,error_type", [
        ("validation", 400, "validation-error"),
        ("forbidden", 403, "insufficient-permissions"),
        ("missing", 404, "resource-not-found"),
        ("conflict", 409, "conflicting-state"),
        ("store", 503, "service-unavailable"),
    ])
    def test_engine_errors(self, bare_app, kind, status, error_type):
        response = bare_app.test_client().get(f'/raise/{kind}')

        assert response.status_code == status
        assert response.mimetype == PROBLEM_JSON
        body = response.get_json(force=True)
        assert body["status"] == status
        assert body["type"].endswith(f"/problems/{error_type}")
        assert body["instance"] == f"/raise/{kind}"

    def test_validation_details(self, bare_app):
        body = bare_app.test_client().get('/raise/validation').get_json(force=True)

        assert body["errors"] == [{"field": "title", "message": "Required"}]

    def test_pydantic_error_is_bad_request(self, bare_app):
        response = bare_app.test_client().get('/raise/pydantic')

        assert response.status_code == 400
        body = response.get_json(force=True)
        assert body["errors"][0]["field"] == "count"

    def test_unknown_route(self, bare_app):
        response = bare_app.test_client().get('/nowhere')

        assert response.status_code == 404
        assert response.mimetype == PROBLEM_JSON

    def test_unexpected_error(self, bare_app):
        response = bare_app.test_client().get('/raise/boom')

        assert response.status_code == 500
        assert "RuntimeError" in response.get_json(force=True)["detail"]

    def test_unexpected_error_detail_hidden_in_production(self, bare_app):
        bare_app.config['ENVIRONMENT'] = 'production'

        response = bare_app.test_client().get('/raise/boom')

        assert response.get_json(force=True)["detail"] == "An unexpected error occurred"


class TestActorMiddleware:
    """Test gateway header parsing."""

    def test_actor_from_headers(self, bare_app, admin, headers_for):
        with bare_app.test_request_context('/', headers=headers_for(admin)):
            actor = actor_from_request()

        assert actor.actor_id == "admin-1"
        assert actor.is_admin()

    def test_unknown_role_is_user(self, bare_app):
        headers = {"X-Actor-Id": "u-9", "X-Actor-Role": "superuser", "X-Actor-Verified": "true"}
        with bare_app.test_request_context('/', headers=headers):
            actor = actor_from_request()

        assert actor.role == "user"
        assert actor.verified is True

    def test_anonymous_ignores_role_headers(self, bare_app):
        with bare_app.test_request_context('/', headers={"X-Actor-Role": "admin", "X-Actor-Verified": "true"}):
            actor = actor_from_request()

        assert not actor.is_authenticated()
        assert not actor.is_admin()
        assert actor.verified is False

    def test_require_actor_rejects_anonymous(self, bare_app):
        response = bare_app.test_client().get('/whoami')

        assert response.status_code == 401
        body = response.get_json(force=True)
        assert body["type"].endswith("/problems/authentication-required")

    def test_require_actor_passes_actor(self, bare_app, owner, headers_for):
        response = bare_app.test_client().get('/whoami', headers=headers_for(owner))

        assert response.status_code == 200
        assert response.get_json()["actor_id"] == "user-1"

    def test_optional_actor(self, bare_app):
        response = bare_app.test_client().get('/maybe')

        assert response.get_json() == {"authenticated": False, "g": None}


class TestStructuredFormatter:
    """Test JSON log rendering."""

    def test_extra_fields_are_merged(self):
        record = logging.LogRecord("services.case_engine", logging.INFO, __file__, 10,
                                   "Case created", None, None)
        record.extra_fields = {"case_id": "abc", "case_ref": "C-2025-0001"}

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "Case created"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "services.case_engine"
        assert entry["case_id"] == "abc"
        assert entry["case_ref"] == "C-2025-0001"
        assert "trace_id" not in entry

    def test_exception_is_rendered(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            exc_info = sys.exc_info()

        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, exc_info)

        entry = json.loads(StructuredFormatter().format(record))

        assert "ValueError: bad value" in entry["exception"]
