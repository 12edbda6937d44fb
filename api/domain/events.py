# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Notification events produced by case transitions.

The lifecycle functions return these as plain values; the engine hands
them to the notification emitter after the case has been written.
"""

from dataclasses import dataclass
from typing import Optional

from models.entities import Case
from models.enums import NotificationAudience


@dataclass(frozen=True)
class RecipientSelector:
    """Who should receive a notification."""
    audience: NotificationAudience
    user_id: Optional[str] = None

    @classmethod
    def admins(cls) -> "RecipientSelector":
        """All admin and staff users."""
        return cls(audience=NotificationAudience.ADMINS)

    @classmethod
    def user(cls, user_id: str) -> "RecipientSelector":
        """A single user, usually the case owner."""
        return cls(audience=NotificationAudience.USER, user_id=user_id)


@dataclass(frozen=True)
class CaseEvent:
    """A message to fan out after a successful case mutation."""
    recipients: RecipientSelector
    message: str
    link: Optional[str] = None


def admin_event(case: Case, message: str, link_prefix: str = "/admin/cases") -> CaseEvent:
    """Build an event addressed to every admin, linking to the admin case view."""
    return CaseEvent(
        recipients=RecipientSelector.admins(),
        message=message,
        link=f"{link_prefix}/{case.id}"
    )


def owner_event(case: Case, message: str, link_prefix: str = "/cases") -> Optional[CaseEvent]:
    """
    Build an event addressed to the case owner.

    Returns None for anonymous cases, which have nobody to notify.
    """
    if not case.owner_id:
        return None
    return CaseEvent(
        recipients=RecipientSelector.user(case.owner_id),
        message=message,
        link=f"{link_prefix}/{case.id}"
    )
