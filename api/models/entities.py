# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the case lifecycle engine.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity, DocumentModel, generate_object_id, utc_now
from .enums import (
    ActorRole,
    CaseKind,
    CaseStatus,
    DesiredAction,
    DisputeCategory,
    NoteVisibility,
    ResolutionStatus,
    ResponseDecision,
)


SCHEDULING_STATUSES = (CaseStatus.APPROVED_FOR_SCHEDULING, CaseStatus.ONGOING)


class StatusHistoryEntry(DocumentModel):
    """One entry of the append-only status audit trail."""

    status: CaseStatus = Field(..., description="Status entered")
    timestamp: datetime = Field(default_factory=utc_now, description="When the status was entered")
    note: Optional[str] = Field(None, description="Optional context for the change")


class CaseNote(DocumentModel):
    """Free-text note attached to a case."""

    id: str = Field(default_factory=generate_object_id, description="Note identifier")
    content: str = Field(..., min_length=1, max_length=5000, description="Note body")
    author_id: str = Field(..., description="User who wrote the note")
    visibility: NoteVisibility = Field(default=NoteVisibility.ADMIN_ONLY, description="Note audience")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        """Validate note content."""
        if not v.strip():
            raise ValueError('Note content cannot be empty')
        return v.strip()


class InvitationResponse(DocumentModel):
    """Owner's counter-proposal to a scheduling invitation."""

    status: ResponseDecision = Field(..., description="Owner decision")
    proposed_date: datetime = Field(..., description="Alternative meeting date")
    proposed_time: str = Field(..., min_length=1, description="Alternative meeting time")
    reason: Optional[str] = Field(None, max_length=1000, description="Why the invitation was declined")


class Invitation(DocumentModel):
    """Admin-proposed meeting attached to a case under scheduling."""

    date: datetime = Field(..., description="Meeting date")
    time: str = Field(..., min_length=1, description="Meeting time")
    location: str = Field(..., min_length=1, description="Meeting location or method")
    user_response: Optional[InvitationResponse] = Field(None, description="Outstanding owner proposal")


class VendorDetails(DocumentModel):
    """Counterparty details for a dispute case."""

    name: Optional[str] = Field(None, max_length=200)
    contact: Optional[str] = Field(None, max_length=200)
    social_media: Optional[str] = Field(None, max_length=200)


class CaseFields(DocumentModel):
    """Narrative and category fields editable by the owner."""

    model_config = ConfigDict(extra='forbid')

    title: Optional[str] = Field(None, max_length=200, description="Case title")
    narrative: Optional[str] = Field(None, max_length=20000, description="Detailed narrative")
    evidence_urls: Optional[List[str]] = Field(None, description="Evidence file URLs")

    # Dispute case fields
    category: Optional[DisputeCategory] = Field(None, description="Dispute category")
    desired_action: Optional[DesiredAction] = Field(None, description="Requested outcome")
    contact_number: Optional[str] = Field(None, max_length=50, description="Owner contact number")
    vendor_details: Optional[VendorDetails] = Field(None, description="Counterparty details")

    # Aid initiative fields
    initiative_category: Optional[str] = Field(None, max_length=100, description="Initiative category")
    applicant_type: Optional[str] = Field(None, max_length=100, description="Individual or organisation")
    location_details: Optional[str] = Field(None, max_length=500, description="Where the initiative runs")
    beneficiary_count: Optional[int] = Field(None, ge=0, description="Expected beneficiaries")
    applicant_name: Optional[str] = Field(None, max_length=200)
    applicant_email: Optional[str] = Field(None, max_length=200)
    applicant_phone: Optional[str] = Field(None, max_length=50)

    @field_validator('title', 'narrative')
    @classmethod
    def strip_text(cls, v):
        """Strip surrounding whitespace; blank text counts as missing."""
        if v is None:
            return v
        v = v.strip()
        return v or None


class Case(CaseFields, BaseEntity):
    """Dispute or aid-initiative case tracked through its lifecycle."""

    # Stored documents may carry keys from older schema versions
    model_config = ConfigDict(extra='ignore')

    case_ref: str = Field(..., pattern=r'^C-\d{4}-\d{4,}$', description="Human-readable reference")
    kind: CaseKind = Field(..., description="Case kind")
    owner_id: Optional[str] = Field(None, description="Submitting user")
    status: CaseStatus = Field(..., description="Lifecycle status")
    status_history: List[StatusHistoryEntry] = Field(default_factory=list, description="Status audit trail")
    invitation: Optional[Invitation] = Field(None, description="Scheduling invitation")
    notes: List[CaseNote] = Field(default_factory=list, description="Case notes")
    resolution_status: Optional[ResolutionStatus] = Field(None, description="Outcome, set on close")
    evidence_urls: List[str] = Field(default_factory=list, description="Evidence file URLs")

    # Public feed
    is_public: bool = Field(default=False, description="Whether the case is on the public feed")
    public_narrative: Optional[str] = Field(None, description="Sanitised narrative for the public feed")

    # Engagement
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    dislikes: int = Field(default=0, ge=0)
    viewed_by: List[str] = Field(default_factory=list)
    liked_by: List[str] = Field(default_factory=list)
    disliked_by: List[str] = Field(default_factory=list)

    version: int = Field(default=1, ge=1, description="Optimistic concurrency version")

    @model_validator(mode='after')
    def validate_lifecycle_invariants(self):
        """Validate status-dependent fields."""
        if not self.status_history:
            raise ValueError('status_history cannot be empty')

        if self.status_history[-1].status != self.status:
            raise ValueError('Last status_history entry must match the current status')

        if self.invitation is not None and self.status not in SCHEDULING_STATUSES:
            raise ValueError(f'invitation is not allowed when status is {self.status}')

        if self.status == CaseStatus.ONGOING and self.invitation is None:
            raise ValueError('invitation is required when status is ongoing')

        if self.invitation and self.invitation.user_response:
            if self.invitation.user_response.status != ResponseDecision.REJECTED:
                raise ValueError('Only a declined invitation can hold an outstanding proposal')

        if (self.resolution_status is not None) != (self.status == CaseStatus.CLOSED):
            raise ValueError('resolution_status is set if and only if status is closed')

        if set(self.liked_by) & set(self.disliked_by):
            raise ValueError('An identifier cannot both like and dislike a case')

        if self.likes != len(self.liked_by) or self.dislikes != len(self.disliked_by):
            raise ValueError('Sentiment counts must match their identifier sets')

        return self

    def is_owned_by(self, actor_id: Optional[str]) -> bool:
        """Check if the given actor submitted this case."""
        return self.owner_id is not None and actor_id is not None and self.owner_id == actor_id

    def enter_status(self, status: CaseStatus, note: Optional[str] = None,
                     timestamp: Optional[datetime] = None) -> None:
        """Move to a status and append the matching history entry."""
        when = timestamp or utc_now()
        self.status = status
        self.status_history.append(StatusHistoryEntry(status=status, timestamp=when, note=note))
        self.updated_at = when

    def has_pending_proposal(self) -> bool:
        """Check if the owner has an unanswered counter-proposal."""
        return self.invitation is not None and self.invitation.user_response is not None

    def notes_visible_to_owner(self) -> List[CaseNote]:
        """Notes the case owner is allowed to read."""
        return [note for note in self.notes if note.visibility == NoteVisibility.OWNER_VISIBLE]


class ActorContext(BaseModel):
    """Actor issuing a command, as forwarded by the gateway."""

    actor_id: Optional[str] = Field(None, description="Authenticated user ID")
    role: ActorRole = Field(default=ActorRole.USER, description="Actor role")
    verified: bool = Field(default=False, description="Whether the actor's identity is verified")
    name: Optional[str] = Field(None, description="Display name")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(
        use_enum_values=True
    )

    def is_admin(self) -> bool:
        """Admins and staff handle cases."""
        return self.role in (ActorRole.ADMIN, ActorRole.STAFF)

    def is_authenticated(self) -> bool:
        """Check if the actor carries a user identity."""
        return bool(self.actor_id)
