# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Scheduling negotiation between an admin and the case owner.

Each round is invite -> owner response -> (if the owner declined) admin
resolution. At most one owner counter-proposal is outstanding at a time.
These handlers run on a copy of the case after the lifecycle layer has
checked the actor's role and the current status.
"""

from datetime import datetime
from typing import List, Optional

from models.entities import ActorContext, Case, Invitation, InvitationResponse
from models.enums import CaseStatus, ResponseDecision
from models.commands import RespondToInvitation, RespondToProposal, ScheduleMeeting
from .events import CaseEvent, admin_event, owner_event


def awaiting_owner_response(case: Case) -> bool:
    """An invitation is out and the owner has not countered it yet."""
    return case.invitation is not None and case.invitation.user_response is None


def awaiting_admin_resolution(case: Case) -> bool:
    """The owner has countered and the admin has not resolved it yet."""
    return case.has_pending_proposal()


def schedule_meeting(
    case: Case,
    command: ScheduleMeeting,
    actor: ActorContext,
    now: datetime,
    settings
) -> List[Optional[CaseEvent]]:
    """
    Set or replace the invitation.

    A fresh invitation discards any outstanding owner proposal.
    """
    rescheduled = case.invitation is not None
    case.invitation = Invitation(
        date=command.date,
        time=command.time,
        location=command.location
    )
    case.enter_status(
        CaseStatus.APPROVED_FOR_SCHEDULING,
        "Meeting rescheduled by an administrator." if rescheduled else "Meeting scheduled by an administrator.",
        now
    )

    return [
        owner_event(
            case,
            f"Action Required: Your case '{case.case_ref}' has been scheduled.",
            settings.owner_link_prefix
        )
    ]


def respond_to_invitation(
    case: Case,
    command: RespondToInvitation,
    actor: ActorContext,
    now: datetime,
    settings
) -> List[Optional[CaseEvent]]:
    """
    Record the owner's answer to the current invitation.

    Accepting makes the invitation the agreed meeting and moves the case
    to ongoing. Declining records a counter-proposal and keeps the case
    waiting for an admin resolution.
    """
    events: List[Optional[CaseEvent]] = []

    if command.response == ResponseDecision.ACCEPTED:
        case.enter_status(CaseStatus.ONGOING, "Invitation accepted by the owner.", now)
        events.append(admin_event(
            case,
            f"Invitation for case {case.case_ref} has been accepted by the user.",
            settings.admin_link_prefix
        ))
    else:
        case.invitation.user_response = InvitationResponse(
            status=ResponseDecision.REJECTED,
            proposed_date=command.proposed_date,
            proposed_time=command.proposed_time.strip(),
            reason=command.reason
        )
        case.enter_status(
            CaseStatus.APPROVED_FOR_SCHEDULING,
            "Owner proposed an alternative time.",
            now
        )
        events.append(admin_event(
            case,
            f"User proposed an alternative time for case {case.case_ref}. Review required.",
            settings.admin_link_prefix
        ))

    events.append(owner_event(
        case,
        f"Your response for case {case.case_ref} has been recorded.",
        settings.owner_link_prefix
    ))
    return events


def respond_to_proposal(
    case: Case,
    command: RespondToProposal,
    actor: ActorContext,
    now: datetime,
    settings
) -> List[Optional[CaseEvent]]:
    """
    Resolve the owner's outstanding counter-proposal.

    Accepting adopts the proposed date and time and moves the case to
    ongoing. Rejecting discards the proposal and leaves the invitation
    date and time untouched, awaiting a new invite.
    """
    proposal = case.invitation.user_response

    if command.response == ResponseDecision.ACCEPTED:
        case.invitation.date = proposal.proposed_date
        case.invitation.time = proposal.proposed_time
        case.invitation.user_response = None
        case.enter_status(CaseStatus.ONGOING, "Admin accepted the owner's proposed time.", now)
        message = f"Your proposed time for case {case.case_ref} has been accepted."
    else:
        case.invitation.user_response = None
        note = "Admin rejected the owner's proposed time."
        if command.message:
            note = f"{note} Reason: {command.message}"
        case.enter_status(CaseStatus.APPROVED_FOR_SCHEDULING, note, now)
        message = (
            f"Your proposed time for case {case.case_ref} was not feasible. "
            "An admin will propose a new time shortly."
        )
        if command.message:
            message = f"{message} Reason: {command.message}"

    return [owner_event(case, message, settings.owner_link_prefix)]
