# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Public feed endpoints.

Public cases can be read and liked or disliked without an account.
Anonymous callers are deduplicated by a salted hash of their address.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
import logging

from domain.engagement import derive_identifier, public_projection
from domain.errors import ValidationException
from models.commands import SentimentRequest
from models.entities import ActorContext
from middleware.actor import optional_actor

logger = logging.getLogger(__name__)

public_tag = Tag(name="Public", description="Public case feed and engagement")
public_bp = APIBlueprint(
    'public',
    __name__,
    url_prefix='/api/public/cases',
    abp_tags=[public_tag]
)


class PublicCasePath(BaseModel):
    case_id: str = Field(..., description="Case identifier")


def _identifier(actor: ActorContext) -> str:
    return derive_identifier(
        actor.actor_id,
        request.remote_addr,
        current_app.case_engine.settings.identifier_salt
    )


@public_bp.get('/<case_id>')
@optional_actor
def view_public_case(actor: ActorContext, path: PublicCasePath):
    """View a public case; each caller is counted at most once."""
    case = current_app.case_engine.view_public_case(path.case_id, _identifier(actor))
    return jsonify(current_app.hal_formatter.format_public_case(public_projection(case)))


@public_bp.post('/<case_id>/sentiment')
@optional_actor
def toggle_sentiment(actor: ActorContext, path: PublicCasePath):
    """
    Like or dislike a public case.

    Repeating an action is a no-op; liking removes an earlier dislike
    from the same caller and vice versa.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationException("Request body must be a JSON object")

    payload = SentimentRequest.model_validate(data)
    counts = current_app.case_engine.toggle_sentiment(path.case_id, payload.action, _identifier(actor))

    logger.info(
        "Sentiment recorded",
        extra={"extra_fields": {"case_id": path.case_id, "action": payload.action}}
    )
    return jsonify(counts.model_dump())
