# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Case lifecycle endpoints.

Thin HTTP adapter over the case engine: request bodies are parsed into
typed commands, the engine applies them, and responses are rendered as
HAL documents whose affordance links list the commands the caller may
issue next.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from pydantic import BaseModel, Field
import logging
from typing import Any, Dict

from domain.errors import NotFoundException, ValidationException
from domain.lifecycle import can_view
from models.commands import COMMAND_NAMES, AddNoteRequest, CreateCaseRequest, parse_command
from models.entities import ActorContext, Case
from middleware.actor import optional_actor, require_actor

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
cases_tag = Tag(name="Cases", description="Case submission, review and scheduling")
cases_bp = APIBlueprint(
    'cases',
    __name__,
    url_prefix='/api/cases',
    abp_tags=[cases_tag]
)


class CasePath(BaseModel):
    case_id: str = Field(..., description="Case identifier")


class CaseCommandPath(BaseModel):
    case_id: str = Field(..., description="Case identifier")
    command: str = Field(..., description="Transition command name")


def _json_body() -> Dict[str, Any]:
    """Request body as a JSON object; an absent body is an empty object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationException("Request body must be a JSON object")
    return data


def _case_response(case: Case, actor: ActorContext, status: int = 200):
    """Render a case with the affordances available to the actor."""
    engine = current_app.case_engine
    body = current_app.hal_formatter.format_case(
        case.model_dump(by_alias=True, mode="json"),
        engine.available_commands(case, actor),
        actor.is_authenticated() and can_view(case, actor)
    )
    return jsonify(body), status


@cases_bp.post('')
@optional_actor
def create_case(actor: ActorContext):
    """
    Submit a new case or save a draft.

    Anonymous callers may only submit aid initiatives; every other
    submission needs a verified account.
    """
    payload = CreateCaseRequest.model_validate(_json_body())
    case = current_app.case_engine.create_case(
        payload.kind,
        actor,
        fields=payload.fields,
        as_draft=payload.as_draft
    )

    response, status = _case_response(case, actor, 201)
    response.headers['Location'] = f"{cases_bp.url_prefix}/{case.id}"
    return response, status


@cases_bp.get('/<case_id>')
@require_actor
def get_case(actor: ActorContext, path: CasePath):
    """Get a case as seen by its owner or an admin."""
    case = current_app.case_engine.get_case(path.case_id, actor)
    return _case_response(case, actor)


@cases_bp.put('/<case_id>')
@require_actor
def edit_case(actor: ActorContext, path: CasePath):
    """Edit the narrative and category fields of a draft, pending or rejected case."""
    command = parse_command("edit", {"fields": _json_body()})
    case = current_app.case_engine.transition(path.case_id, command, actor)
    return _case_response(case, actor)


@cases_bp.delete('/<case_id>')
@require_actor
def delete_case(actor: ActorContext, path: CasePath):
    """Delete a case; allowed to its owner and to admins in any status."""
    current_app.case_engine.delete_case(path.case_id, actor)
    return '', 204


@cases_bp.post('/<case_id>/notes')
@require_actor
def add_note(actor: ActorContext, path: CasePath):
    """Append a note without changing the case status."""
    payload = AddNoteRequest.model_validate(_json_body())
    case = current_app.case_engine.add_note(path.case_id, payload.content, payload.visibility, actor)
    return _case_response(case, actor, 201)


@cases_bp.post('/<case_id>/<command>')
@require_actor
def apply_command(actor: ActorContext, path: CaseCommandPath):
    """
    Apply a lifecycle command.

    The command name selects the payload schema; unknown names are 404.
    """
    if path.command not in COMMAND_NAMES or path.command == "edit":
        raise NotFoundException(f"Unknown case command '{path.command}'")

    command = parse_command(path.command, _json_body())
    case = current_app.case_engine.transition(path.case_id, command, actor)
    return _case_response(case, actor)
