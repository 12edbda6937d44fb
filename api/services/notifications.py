# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Notification emitter for case lifecycle events.

Events are delivered in-app by writing notification documents, and handed
off to email/push workers over AMQP. Emission is fire-and-forget: every
failure is logged and swallowed so it never affects the case command that
produced the event.
"""

import logging
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from domain.events import CaseEvent, RecipientSelector
from models.base import utc_now
from models.enums import NotificationAudience

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class NotificationEmitter:
    """Fans case events out to admins or the case owner."""

    def __init__(self, store, amqp_service=None):
        """
        Args:
            store: Object exposing ``find_admin_ids()`` and ``insert_notifications(docs)``
            amqp_service: Optional AMQPService for email/push hand-off
        """
        self.store = store
        self.amqp_service = amqp_service

    def resolve_recipients(self, recipients: RecipientSelector) -> List[str]:
        """User IDs selected by a recipient selector."""
        if recipients.audience == NotificationAudience.ADMINS:
            return self.store.find_admin_ids()
        return [recipients.user_id] if recipients.user_id else []

    def emit(self, recipients: RecipientSelector, message: str, link: Optional[str] = None) -> int:
        """
        Deliver one notification to every selected recipient.

        Args:
            recipients: Who should be notified
            message: Notification text
            link: Optional in-app link

        Returns:
            Number of in-app notifications written (0 on failure)
        """
        with tracer.start_as_current_span("notification.emit") as span:
            span.set_attribute("notification.audience", str(recipients.audience))
            delivered = 0

            try:
                user_ids = self.resolve_recipients(recipients)
                now = utc_now()
                documents = [
                    {
                        "recipientId": user_id,
                        "message": message,
                        "link": link,
                        "read": False,
                        "createdAt": now
                    }
                    for user_id in user_ids
                ]
                delivered = self.store.insert_notifications(documents)
                span.set_attribute("notification.recipients", len(user_ids))
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error(
                    "Failed to write in-app notifications",
                    extra={
                        "extra_fields": {
                            "audience": str(recipients.audience),
                            "error": str(e),
                            "error_type": type(e).__name__
                        }
                    },
                    exc_info=True
                )

            self._hand_off(recipients, message, link)
            return delivered

    def emit_event(self, event: CaseEvent) -> int:
        """Emit a CaseEvent produced by a lifecycle transition."""
        return self.emit(event.recipients, event.message, event.link)

    def _hand_off(self, recipients: RecipientSelector, message: str, link: Optional[str]) -> None:
        """Publish the event for email/push workers."""
        if self.amqp_service is None:
            return

        audience = NotificationAudience(recipients.audience).value
        payload: Dict[str, Any] = {
            "audience": audience,
            "userId": recipients.user_id,
            "message": message,
            "link": link
        }

        try:
            result = self.amqp_service.publish_event(f"case.{audience}", payload)
            if not result.success:
                logger.warning(
                    "Notification hand-off was not published",
                    extra={"extra_fields": {"audience": audience, "error": result.error}}
                )
        except Exception as e:
            logger.error(
                "Notification hand-off failed",
                extra={
                    "extra_fields": {
                        "audience": audience,
                        "error": str(e),
                        "error_type": type(e).__name__
                    }
                },
                exc_info=True
            )
