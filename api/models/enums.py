# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the case lifecycle engine.
"""

from enum import Enum


class CaseKind(str, Enum):
    """Kind of case; fixed at creation."""
    DISPUTE_CASE = "dispute_case"
    AID_INITIATIVE = "aid_initiative"


class CaseStatus(str, Enum):
    """Case lifecycle status enumeration."""
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED_FOR_SCHEDULING = "approved_for_scheduling"
    ONGOING = "ongoing"
    REJECTED = "rejected"
    CASE_ACTIVE = "case_active"
    CLOSED = "closed"


class ResolutionStatus(str, Enum):
    """Final outcome recorded when a case is closed."""
    RESOLVED_SUCCESSFULLY = "resolved_successfully"
    UNRESOLVED = "unresolved"
    CANCELLED_BY_USER = "cancelled_by_user"


class NoteVisibility(str, Enum):
    """Who can read a case note."""
    ADMIN_ONLY = "admin_only"
    OWNER_VISIBLE = "owner_visible"


class ResponseDecision(str, Enum):
    """Answer to an invitation or to a counter-proposal."""
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ActorRole(str, Enum):
    """Role of the actor issuing a command."""
    USER = "user"
    STAFF = "staff"
    ADMIN = "admin"


class SentimentAction(str, Enum):
    """Public sentiment toggles."""
    LIKE = "like"
    UNLIKE = "unlike"
    DISLIKE = "dislike"
    UNDISLIKE = "undislike"


class DisputeCategory(str, Enum):
    """Categories available to dispute cases."""
    VENDOR_AND_SERVICE = "vendor_and_service"
    PEER_TO_PEER = "peer_to_peer"
    OPPRESSION_HARASSMENT = "oppression_harassment"
    FINANCIAL_FRAUD = "financial_fraud"


class DesiredAction(str, Enum):
    """Outcome the owner of a dispute case is asking for."""
    MEDIATION = "mediation"
    FORMAL_LEGAL_SUPPORT = "formal_legal_support"
    PUBLIC_RESOLUTION = "public_resolution"


class NotificationAudience(str, Enum):
    """Recipient groups for lifecycle notifications."""
    ADMINS = "admins"
    USER = "user"
