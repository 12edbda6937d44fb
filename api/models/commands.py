# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tagged command types for case transitions.

Each command carries only the fields its transition needs and is
discriminated on the ``command`` literal.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .entities import CaseFields
from .enums import CaseKind, NoteVisibility, ResolutionStatus, ResponseDecision, SentimentAction


class CaseCommand(BaseModel):
    """Base model for case commands."""

    model_config = ConfigDict(
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra='forbid',
        frozen=True
    )


class SubmitCase(CaseCommand):
    """Owner finalizes a draft or resubmits a rejected case."""
    command: Literal["submit"] = "submit"
    fields: CaseFields = Field(default_factory=CaseFields, description="Optional last-minute edits")


class EditCase(CaseCommand):
    """Owner edits narrative and category fields."""
    command: Literal["edit"] = "edit"
    fields: CaseFields = Field(..., description="Fields to update")


class ApproveForScheduling(CaseCommand):
    """Admin accepts a case for scheduling."""
    command: Literal["approve"] = "approve"


class RejectCase(CaseCommand):
    """Admin rejects a case with a note for the owner."""
    command: Literal["reject"] = "reject"
    note: str = Field(..., min_length=1, max_length=5000, description="Rejection reasoning")

    @field_validator('note')
    @classmethod
    def validate_note(cls, v):
        """Validate rejection note."""
        if not v.strip():
            raise ValueError('A rejection note is required')
        return v.strip()


class ScheduleMeeting(CaseCommand):
    """Admin invites the owner to a meeting, or reschedules it."""
    command: Literal["schedule"] = "schedule"
    date: datetime = Field(..., description="Meeting date")
    time: str = Field(..., min_length=1, max_length=50, description="Meeting time")
    location: str = Field(..., min_length=1, max_length=500, description="Meeting location or method")

    @field_validator('time', 'location')
    @classmethod
    def validate_text(cls, v):
        """Time and location cannot be blank."""
        if not v.strip():
            raise ValueError('Time and location are required for scheduling')
        return v.strip()


class RespondToInvitation(CaseCommand):
    """Owner accepts the invitation or proposes another date and time."""
    command: Literal["respond_to_invitation"] = "respond_to_invitation"
    response: ResponseDecision = Field(..., description="Owner decision")
    proposed_date: Optional[datetime] = Field(None, description="Alternative date when declining")
    proposed_time: Optional[str] = Field(None, max_length=50, description="Alternative time when declining")
    reason: Optional[str] = Field(None, max_length=1000, description="Why the invitation was declined")

    @model_validator(mode='after')
    def validate_proposal(self):
        """A declined invitation must carry a counter-proposal."""
        if self.response == ResponseDecision.REJECTED:
            if self.proposed_date is None or not (self.proposed_time or '').strip():
                raise ValueError('A proposed date and time are required when rejecting')
        return self


class RespondToProposal(CaseCommand):
    """Admin accepts or discards the owner's counter-proposal."""
    command: Literal["respond_to_proposal"] = "respond_to_proposal"
    response: ResponseDecision = Field(..., description="Admin decision")
    message: Optional[str] = Field(None, max_length=1000, description="Message for the owner")


class RevertToReview(CaseCommand):
    """Admin sends a case back to pending review."""
    command: Literal["revert"] = "revert"
    note: Optional[str] = Field(None, max_length=1000)


class ActivateCase(CaseCommand):
    """Admin records that the meeting took place and the case proceeds."""
    command: Literal["activate"] = "activate"
    note: Optional[str] = Field(None, max_length=1000)


class CloseCase(CaseCommand):
    """Admin closes a case with its final resolution."""
    command: Literal["close"] = "close"
    resolution_status: ResolutionStatus = Field(..., description="Final outcome")


class PublishCase(CaseCommand):
    """Admin puts a case on the public feed or takes it off."""
    command: Literal["publish"] = "publish"
    is_public: bool = Field(..., description="Whether the case appears on the public feed")
    public_narrative: Optional[str] = Field(None, max_length=20000, description="Sanitised narrative shown publicly")

    @field_validator('public_narrative')
    @classmethod
    def strip_narrative(cls, v):
        """Blank narrative counts as not provided."""
        if v is None:
            return v
        return v.strip() or None


TransitionCommand = Annotated[
    Union[
        SubmitCase,
        EditCase,
        ApproveForScheduling,
        RejectCase,
        ScheduleMeeting,
        RespondToInvitation,
        RespondToProposal,
        RevertToReview,
        ActivateCase,
        CloseCase,
        PublishCase,
    ],
    Field(discriminator="command")
]

_command_adapter = TypeAdapter(TransitionCommand)

COMMAND_NAMES = (
    "submit", "edit", "approve", "reject", "schedule",
    "respond_to_invitation", "respond_to_proposal", "revert", "activate", "close", "publish",
)


def parse_command(command: str, payload: Optional[Dict[str, Any]] = None):
    """
    Build a typed command from its name and raw payload.

    Raises:
        pydantic.ValidationError: If the command is unknown or the payload invalid
    """
    data = dict(payload or {})
    data["command"] = command
    return _command_adapter.validate_python(data)


class CreateCaseRequest(BaseModel):
    """Payload for a new case submission."""

    model_config = ConfigDict(use_enum_values=True, extra='forbid', alias_generator=to_camel, populate_by_name=True)

    kind: CaseKind = Field(default=CaseKind.DISPUTE_CASE, description="Case kind")
    as_draft: bool = Field(default=False, description="Save without submitting for review")
    fields: CaseFields = Field(default_factory=CaseFields, description="Case content")


class AddNoteRequest(BaseModel):
    """Payload for a new case note."""

    model_config = ConfigDict(use_enum_values=True, extra='forbid', alias_generator=to_camel, populate_by_name=True)

    content: str = Field(..., min_length=1, max_length=5000)
    visibility: Optional[NoteVisibility] = Field(None, description="Defaults to admin_only")


class SentimentRequest(BaseModel):
    """Payload for a public sentiment toggle."""

    model_config = ConfigDict(use_enum_values=True, extra='forbid', alias_generator=to_camel, populate_by_name=True)

    action: SentimentAction

