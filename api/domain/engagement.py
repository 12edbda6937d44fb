# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Public engagement counters for cases on the public feed.

Likes and dislikes are always recomputed from their identifier sets.
Views are deduplicated by identifier and never decrease.
"""

import hashlib
from typing import Any, Dict, Optional

from models.entities import Case
from models.enums import SentimentAction
from .errors import ForbiddenException, NotFoundException, ValidationException


def derive_identifier(user_id: Optional[str], remote_addr: Optional[str], salt: str) -> str:
    """
    Identifier used to deduplicate engagement.

    Authenticated users are identified by their user ID. Anonymous callers
    are identified by a salted SHA-256 of their network address; the raw
    address is never returned or stored.

    Args:
        user_id: Authenticated user ID, if any
        remote_addr: Caller network address
        salt: Secret salt for address hashing

    Returns:
        Deduplication identifier
    """
    if user_id:
        return user_id
    if not remote_addr:
        raise ValidationException("Cannot identify the caller")
    return hashlib.sha256(f"{salt}{remote_addr}".encode("utf-8")).hexdigest()


def ensure_public(case: Case) -> None:
    """
    Raises:
        NotFoundException: If the case is not on the public feed
    """
    if not case.is_public:
        raise NotFoundException("Case not found")


def ensure_public_view_allowed(settings) -> None:
    """
    Raises:
        ForbiddenException: If public viewing is switched off
    """
    if not settings.allow_public_view:
        raise ForbiddenException("Public case viewing is disabled")


def apply_sentiment(case: Case, action: SentimentAction, identifier: str) -> Case:
    """
    Apply a sentiment toggle to a copy of the case.

    Liking removes an existing dislike and vice versa. Repeating an action
    is a no-op.

    Returns:
        Updated copy of the case
    """
    ensure_public(case)
    action = SentimentAction(action)
    updated = case.model_copy(deep=True)

    liked = list(updated.liked_by)
    disliked = list(updated.disliked_by)

    if action == SentimentAction.LIKE:
        if identifier not in liked:
            liked.append(identifier)
        disliked = [i for i in disliked if i != identifier]
    elif action == SentimentAction.UNLIKE:
        liked = [i for i in liked if i != identifier]
    elif action == SentimentAction.DISLIKE:
        if identifier not in disliked:
            disliked.append(identifier)
        liked = [i for i in liked if i != identifier]
    elif action == SentimentAction.UNDISLIKE:
        disliked = [i for i in disliked if i != identifier]

    updated.liked_by = liked
    updated.disliked_by = disliked
    updated.likes = len(liked)
    updated.dislikes = len(disliked)
    return updated


def apply_view(case: Case, identifier: str) -> Optional[Case]:
    """
    Count a view on a copy of the case.

    Returns:
        Updated copy, or None when the identifier was already counted
    """
    ensure_public(case)
    if identifier in case.viewed_by:
        return None

    updated = case.model_copy(deep=True)
    updated.viewed_by.append(identifier)
    updated.views = max(updated.views + 1, len(updated.viewed_by))
    return updated


def public_projection(case: Case) -> Dict[str, Any]:
    """Fields of a public case that anyone may see."""
    return {
        "id": case.id,
        "caseRef": case.case_ref,
        "kind": case.kind,
        "title": case.title,
        "narrative": case.public_narrative or case.narrative,
        "status": case.status,
        "resolutionStatus": case.resolution_status,
        "views": case.views,
        "likes": case.likes,
        "dislikes": case.dislikes,
        "createdAt": case.created_at.isoformat()
    }
