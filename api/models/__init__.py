# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the case lifecycle engine.
"""

# Base models
from .base import BaseEntity, DocumentModel, generate_object_id, utc_now

# Enumerations
from .enums import (
    ActorRole,
    CaseKind,
    CaseStatus,
    DesiredAction,
    DisputeCategory,
    NoteVisibility,
    NotificationAudience,
    ResolutionStatus,
    ResponseDecision,
    SentimentAction
)

# Core entities
from .entities import (
    ActorContext,
    Case,
    CaseFields,
    CaseNote,
    Invitation,
    InvitationResponse,
    StatusHistoryEntry,
    VendorDetails
)

# Commands and request payloads
from .commands import (
    ActivateCase,
    AddNoteRequest,
    ApproveForScheduling,
    CloseCase,
    PublishCase,
    CreateCaseRequest,
    EditCase,
    RejectCase,
    RespondToInvitation,
    RespondToProposal,
    RevertToReview,
    ScheduleMeeting,
    SentimentRequest,
    SubmitCase,
    TransitionCommand,
    parse_command
)

# Response models
from .responses import HalLink, SentimentCounts

__all__ = [
    # Base models
    "BaseEntity",
    "DocumentModel",
    "generate_object_id",
    "utc_now",

    # Enumerations
    "ActorRole",
    "CaseKind",
    "CaseStatus",
    "DesiredAction",
    "DisputeCategory",
    "NoteVisibility",
    "NotificationAudience",
    "ResolutionStatus",
    "ResponseDecision",
    "SentimentAction",

    # Core entities
    "ActorContext",
    "Case",
    "CaseFields",
    "CaseNote",
    "Invitation",
    "InvitationResponse",
    "StatusHistoryEntry",
    "VendorDetails",

    # Commands
    "ActivateCase",
    "AddNoteRequest",
    "ApproveForScheduling",
    "CloseCase",
    "PublishCase",
    "CreateCaseRequest",
    "EditCase",
    "RejectCase",
    "RespondToInvitation",
    "RespondToProposal",
    "RevertToReview",
    "ScheduleMeeting",
    "SentimentRequest",
    "SubmitCase",
    "TransitionCommand",
    "parse_command",

    # Response models
    "HalLink",
    "SentimentCounts",
]
