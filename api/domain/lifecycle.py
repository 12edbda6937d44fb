# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Case lifecycle state machine.

This module contains pure functions that validate a command against the
case's current status and the actor's role, and apply it to a copy of
the case. Nothing here touches storage; callers persist the returned
case and then emit the returned events.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from models.base import utc_now
from models.commands import (
    ActivateCase,
    ApproveForScheduling,
    CloseCase,
    EditCase,
    PublishCase,
    RejectCase,
    RevertToReview,
    SubmitCase
)
from models.entities import ActorContext, Case, CaseFields, CaseNote, StatusHistoryEntry
from models.enums import CaseKind, CaseStatus, NoteVisibility
from . import scheduling
from .errors import ConflictingStateException, ForbiddenException, ValidationException
from .events import CaseEvent, admin_event, owner_event


OWNER = "owner"
ADMIN = "admin"

RESUBMITTED_NOTE = "resubmitted after rejection"

EDITABLE_STATUSES = (CaseStatus.DRAFT, CaseStatus.PENDING_REVIEW, CaseStatus.REJECTED)

# Required for a non-draft submission
REQUIRED_FIELDS: Dict[CaseKind, Tuple[str, ...]] = {
    CaseKind.DISPUTE_CASE: ("title", "category", "desired_action", "narrative"),
    CaseKind.AID_INITIATIVE: (
        "title", "initiative_category", "narrative",
        "applicant_name", "applicant_email", "applicant_phone"
    ),
}

DRAFT_REQUIRED_FIELDS: Tuple[str, ...] = ("title",)

# Fields that only make sense for one kind
KIND_FIELDS: Dict[CaseKind, Tuple[str, ...]] = {
    CaseKind.DISPUTE_CASE: ("category", "desired_action", "contact_number", "vendor_details"),
    CaseKind.AID_INITIATIVE: (
        "initiative_category", "applicant_type", "location_details", "beneficiary_count",
        "applicant_name", "applicant_email", "applicant_phone"
    ),
}


Handler = Callable[[Case, object, ActorContext, datetime, object], List[Optional[CaseEvent]]]


@dataclass(frozen=True)
class TransitionRule:
    """Who may issue a command, from which statuses, and what it does."""
    actor: str
    from_statuses: Tuple[CaseStatus, ...]
    handler: Handler
    precondition: Optional[Callable[[Case], bool]] = None
    precondition_message: Optional[str] = None


@dataclass
class TransitionResult:
    """Result of applying a command to a case."""
    case: Case
    events: List[CaseEvent] = field(default_factory=list)
    history_appended: int = 0


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------

def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_fields_for_kind(kind: CaseKind, fields: CaseFields) -> None:
    """
    Reject fields that belong to the other case kind.

    Raises:
        ValidationException: If a foreign field is present
    """
    kind = CaseKind(kind)
    foreign = []
    for other_kind, names in KIND_FIELDS.items():
        if other_kind == kind:
            continue
        foreign.extend(name for name in names if getattr(fields, name) is not None)

    if foreign:
        raise ValidationException(
            f"Fields not allowed for a {kind.value} case",
            [{"field": name, "message": f"Not a {kind.value} field"} for name in foreign]
        )


def missing_required_fields(kind: CaseKind, source, as_draft: bool = False) -> List[str]:
    """
    List required fields that are absent or blank.

    Args:
        kind: Case kind
        source: Case or CaseFields to inspect
        as_draft: Whether draft rules apply

    Returns:
        Names of missing fields, empty when complete
    """
    required = DRAFT_REQUIRED_FIELDS if as_draft else REQUIRED_FIELDS[CaseKind(kind)]
    return [name for name in required if _is_blank(getattr(source, name, None))]


def require_fields(kind: CaseKind, source, as_draft: bool = False) -> None:
    """
    Raise if required fields are missing.

    Raises:
        ValidationException: With one entry per missing field
    """
    missing = missing_required_fields(kind, source, as_draft)
    if missing:
        label = "draft" if as_draft else "submission"
        raise ValidationException(
            f"Missing required fields for {label}: {', '.join(missing)}",
            [{"field": name, "message": "Field is required"} for name in missing]
        )


def apply_fields(case: Case, fields: CaseFields) -> None:
    """Copy every provided field onto the case."""
    validate_fields_for_kind(case.kind, fields)
    for name in CaseFields.model_fields:
        value = getattr(fields, name)
        if value is not None:
            setattr(case, name, value)


# ---------------------------------------------------------------------------
# Permission checks
# ---------------------------------------------------------------------------

def check_actor(case: Case, actor: ActorContext, required: str) -> None:
    """
    Check that the actor may issue a command of the given actor class.

    Raises:
        ForbiddenException: If the actor lacks the role or ownership
    """
    if not actor.is_authenticated():
        raise ForbiddenException("An authenticated actor is required")

    if required == ADMIN and not actor.is_admin():
        raise ForbiddenException("Only administrators can perform this action")

    if required == OWNER and not case.is_owned_by(actor.actor_id):
        raise ForbiddenException("Only the case owner can perform this action")


def can_view(case: Case, actor: ActorContext) -> bool:
    """Owners see their own cases, admins see all."""
    return actor.is_admin() or case.is_owned_by(actor.actor_id)


def check_delete_permission(case: Case, actor: ActorContext) -> None:
    """
    Deletion is unconditional on status, but restricted to owner or admin.

    Raises:
        ForbiddenException: If the actor is neither
    """
    if not actor.is_authenticated() or not can_view(case, actor):
        raise ForbiddenException("You are not allowed to delete this case")


def view_for(case: Case, actor: ActorContext) -> Case:
    """
    Project a case for the given actor.

    Admins see every note; owners only see owner-visible notes.

    Raises:
        ForbiddenException: If the actor may not view the case
    """
    if not actor.is_authenticated() or not can_view(case, actor):
        raise ForbiddenException("You are not allowed to view this case")

    if actor.is_admin():
        return case

    projected = case.model_copy(deep=True)
    projected.notes = case.notes_visible_to_owner()
    return projected


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def validate_new_case(kind: CaseKind, actor: ActorContext, fields: CaseFields, as_draft: bool) -> None:
    """
    Validate a submission before a reference is issued.

    Anonymous submissions are accepted only for final aid initiative
    applications. Every other submission needs a verified owner.

    Raises:
        ForbiddenException: If the actor may not submit
        ValidationException: If fields are missing or belong to the other kind
    """
    kind = CaseKind(kind)

    if not actor.is_authenticated():
        if kind != CaseKind.AID_INITIATIVE or as_draft:
            raise ForbiddenException("Sign in to submit this case")
    elif not actor.verified:
        raise ForbiddenException("Your identity must be verified before submitting a case")

    validate_fields_for_kind(kind, fields)
    require_fields(kind, fields, as_draft)


def build_new_case(
    kind: CaseKind,
    actor: ActorContext,
    fields: CaseFields,
    as_draft: bool,
    case_ref: str,
    settings,
    now: Optional[datetime] = None
) -> TransitionResult:
    """
    Build the initial case record for a validated submission.

    Args:
        kind: Case kind
        actor: Submitting actor
        fields: Narrative and category fields
        as_draft: Save without submitting for review
        case_ref: Reference issued by the reference generator
        settings: Engine settings
        now: Creation time

    Returns:
        TransitionResult with the new case and admin notifications
    """
    now = now or utc_now()
    kind = CaseKind(kind)

    initial = CaseStatus.DRAFT if as_draft else CaseStatus.PENDING_REVIEW
    data = fields.model_dump(exclude_none=True)
    case = Case(
        **data,
        case_ref=case_ref,
        kind=kind,
        owner_id=actor.actor_id,
        status=initial,
        status_history=[StatusHistoryEntry(status=initial, timestamp=now)],
        created_at=now,
        updated_at=now
    )

    events: List[Optional[CaseEvent]] = []
    if not as_draft:
        events.extend(_on_submitted(case, now, settings))

    return TransitionResult(
        case=revalidate(case),
        events=[e for e in events if e],
        history_appended=len(case.status_history)
    )


def _on_submitted(case: Case, now: datetime, settings) -> List[Optional[CaseEvent]]:
    """Notify admins of a fresh submission and apply auto-accept."""
    label = "application" if case.kind == CaseKind.AID_INITIATIVE else "case"
    events = [admin_event(
        case,
        f"New {label} '{case.case_ref}' submitted for review.",
        settings.admin_link_prefix
    )]

    if settings.auto_accept_submissions:
        case.enter_status(
            CaseStatus.APPROVED_FOR_SCHEDULING,
            "Automatically accepted for scheduling.",
            now
        )
        events.append(owner_event(
            case,
            f"Good news! Your case '{case.case_ref}' has been approved for scheduling.",
            settings.owner_link_prefix
        ))

    return events


# ---------------------------------------------------------------------------
# Transition handlers
# ---------------------------------------------------------------------------

def _submit(case: Case, command: SubmitCase, actor: ActorContext, now: datetime, settings):
    was_rejected = case.status == CaseStatus.REJECTED
    apply_fields(case, command.fields)
    require_fields(case.kind, case)

    if was_rejected:
        case.enter_status(CaseStatus.PENDING_REVIEW, RESUBMITTED_NOTE, now)
        return [admin_event(
            case,
            f"Case {case.case_ref} was resubmitted by the user after rejection.",
            settings.admin_link_prefix
        )]

    case.enter_status(CaseStatus.PENDING_REVIEW, "Submitted for review.", now)
    return _on_submitted(case, now, settings)


def _edit(case: Case, command: EditCase, actor: ActorContext, now: datetime, settings):
    apply_fields(case, command.fields)
    require_fields(case.kind, case, as_draft=case.status == CaseStatus.DRAFT)
    case.updated_at = now

    if case.status == CaseStatus.REJECTED:
        case.enter_status(CaseStatus.PENDING_REVIEW, RESUBMITTED_NOTE, now)
        return [admin_event(
            case,
            f"Case {case.case_ref} was resubmitted by the user after rejection.",
            settings.admin_link_prefix
        )]

    return []


def _approve(case: Case, command: ApproveForScheduling, actor: ActorContext, now: datetime, settings):
    case.enter_status(CaseStatus.APPROVED_FOR_SCHEDULING, "Approved for scheduling.", now)
    return [owner_event(
        case,
        f"Good news! Your case '{case.case_ref}' has been approved for scheduling.",
        settings.owner_link_prefix
    )]


def _reject(case: Case, command: RejectCase, actor: ActorContext, now: datetime, settings):
    case.notes.append(CaseNote(
        content=command.note,
        author_id=actor.actor_id,
        visibility=NoteVisibility.OWNER_VISIBLE,
        created_at=now
    ))
    case.enter_status(CaseStatus.REJECTED, command.note, now)

    excerpt = command.note if len(command.note) <= 100 else f"{command.note[:100]}..."
    return [owner_event(
        case,
        f"Your case '{case.title or case.case_ref}' was rejected. Notes: {excerpt}",
        settings.owner_link_prefix
    )]


def _revert(case: Case, command: RevertToReview, actor: ActorContext, now: datetime, settings):
    case.invitation = None
    case.enter_status(
        CaseStatus.PENDING_REVIEW,
        command.note or "Returned to pending review by an administrator.",
        now
    )
    return [owner_event(
        case,
        f"An update on your case '{case.case_ref}': it has been returned to pending review by an administrator.",
        settings.owner_link_prefix
    )]


def _activate(case: Case, command: ActivateCase, actor: ActorContext, now: datetime, settings):
    case.invitation = None
    case.enter_status(CaseStatus.CASE_ACTIVE, command.note or "Meeting held; case is active.", now)
    return [owner_event(
        case,
        f"Your case '{case.case_ref}' is now active.",
        settings.owner_link_prefix
    )]


def _close(case: Case, command: CloseCase, actor: ActorContext, now: datetime, settings):
    case.invitation = None
    case.resolution_status = command.resolution_status
    case.enter_status(CaseStatus.CLOSED, f"Closed: {command.resolution_status}", now)
    return [owner_event(
        case,
        f"Your case '{case.case_ref}' has been closed. Final status: {command.resolution_status}.",
        settings.owner_link_prefix
    )]


def _publish(case: Case, command: PublishCase, actor: ActorContext, now: datetime, settings):
    # Visibility only; status and history are untouched
    case.is_public = command.is_public
    if command.public_narrative is not None:
        case.public_narrative = command.public_narrative
    case.updated_at = now
    return []


TRANSITIONS: Dict[str, TransitionRule] = {
    "submit": TransitionRule(OWNER, (CaseStatus.DRAFT, CaseStatus.REJECTED), _submit),
    "edit": TransitionRule(OWNER, EDITABLE_STATUSES, _edit),
    "approve": TransitionRule(ADMIN, (CaseStatus.PENDING_REVIEW,), _approve),
    "reject": TransitionRule(ADMIN, (CaseStatus.PENDING_REVIEW,), _reject),
    "schedule": TransitionRule(
        ADMIN,
        (CaseStatus.PENDING_REVIEW, CaseStatus.APPROVED_FOR_SCHEDULING),
        scheduling.schedule_meeting
    ),
    "respond_to_invitation": TransitionRule(
        OWNER,
        (CaseStatus.APPROVED_FOR_SCHEDULING,),
        scheduling.respond_to_invitation,
        precondition=scheduling.awaiting_owner_response,
        precondition_message="There is no open invitation awaiting your response"
    ),
    "respond_to_proposal": TransitionRule(
        ADMIN,
        (CaseStatus.APPROVED_FOR_SCHEDULING,),
        scheduling.respond_to_proposal,
        precondition=scheduling.awaiting_admin_resolution,
        precondition_message="There is no owner proposal awaiting a response"
    ),
    "revert": TransitionRule(
        ADMIN,
        (CaseStatus.APPROVED_FOR_SCHEDULING, CaseStatus.REJECTED),
        _revert
    ),
    "activate": TransitionRule(ADMIN, (CaseStatus.ONGOING,), _activate),
    "close": TransitionRule(
        ADMIN,
        (CaseStatus.ONGOING, CaseStatus.APPROVED_FOR_SCHEDULING, CaseStatus.CASE_ACTIVE),
        _close
    ),
    "publish": TransitionRule(ADMIN, tuple(CaseStatus), _publish),
}


def _check_state(case: Case, command_name: str, rule: TransitionRule) -> None:
    if case.status not in rule.from_statuses:
        raise ConflictingStateException(
            f"Cannot {command_name} a case with status '{case.status}'",
            current_status=case.status
        )
    if rule.precondition is not None and not rule.precondition(case):
        raise ConflictingStateException(rule.precondition_message, current_status=case.status)


def apply_command(
    case: Case,
    command,
    actor: ActorContext,
    settings,
    now: Optional[datetime] = None
) -> TransitionResult:
    """
    Validate and apply a command to a copy of the case.

    Role and ownership are checked before the current status, so an
    unauthorized actor always gets ForbiddenException. The input case is
    never modified.

    Args:
        case: Current case record
        command: Typed transition command
        actor: Actor issuing the command
        settings: Engine settings
        now: Transition time

    Returns:
        TransitionResult with the updated case and events to emit

    Raises:
        ForbiddenException: Actor not permitted
        ConflictingStateException: Command invalid for the current status
        ValidationException: Invalid fields for the case kind or status
    """
    rule = TRANSITIONS[command.command]
    check_actor(case, actor, rule.actor)
    _check_state(case, command.command, rule)

    now = now or utc_now()
    updated = case.model_copy(deep=True)
    before = len(updated.status_history)
    events = rule.handler(updated, command, actor, now, settings)

    return TransitionResult(
        case=revalidate(updated),
        events=[event for event in events if event],
        history_appended=len(updated.status_history) - before
    )


def available_commands(case: Case, actor: ActorContext) -> List[str]:
    """Commands the actor could issue against the case right now."""
    commands = []
    for name, rule in TRANSITIONS.items():
        try:
            check_actor(case, actor, rule.actor)
            _check_state(case, name, rule)
        except (ForbiddenException, ConflictingStateException):
            continue
        commands.append(name)
    return commands


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

def add_note(
    case: Case,
    content: str,
    visibility: Optional[NoteVisibility],
    actor: ActorContext,
    settings,
    now: Optional[datetime] = None
) -> TransitionResult:
    """
    Append a note to a copy of the case.

    Admins may choose any visibility. Owners' notes are always admin-only.
    Notes never change status or history.

    Raises:
        ForbiddenException: If the actor may not add this note
        ValidationException: If the content is empty
    """
    if not actor.is_authenticated() or not can_view(case, actor):
        raise ForbiddenException("You are not allowed to add notes to this case")

    if not actor.is_admin():
        if visibility is not None and NoteVisibility(visibility) == NoteVisibility.OWNER_VISIBLE:
            raise ForbiddenException("Only administrators can add owner-visible notes")
        visibility = NoteVisibility.ADMIN_ONLY

    if content is None or not content.strip():
        raise ValidationException(
            "Note content cannot be empty",
            [{"field": "content", "message": "Field is required"}]
        )

    now = now or utc_now()
    updated = case.model_copy(deep=True)
    updated.notes.append(CaseNote(
        content=content,
        author_id=actor.actor_id,
        visibility=visibility or NoteVisibility.ADMIN_ONLY,
        created_at=now
    ))
    updated.updated_at = now

    events: List[Optional[CaseEvent]] = []
    if actor.is_admin() and updated.notes[-1].visibility == NoteVisibility.OWNER_VISIBLE:
        events.append(owner_event(
            updated,
            f"A new note was added to your case '{updated.case_ref}'.",
            settings.owner_link_prefix
        ))
    elif not actor.is_admin():
        events.append(admin_event(
            updated,
            f"The owner added a note to case {updated.case_ref}.",
            settings.admin_link_prefix
        ))

    return TransitionResult(case=revalidate(updated), events=[e for e in events if e])


def revalidate(case: Case) -> Case:
    """
    Re-run model validation on a mutated case.

    Raises:
        ValidationException: If the case no longer satisfies its invariants
    """
    try:
        return Case.model_validate(case.model_dump())
    except ValidationError as e:
        raise ValidationException.from_pydantic("Case failed validation", e)
