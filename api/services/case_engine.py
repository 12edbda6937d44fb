# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Case engine: the command surface of the case lifecycle.

The engine loads a case, applies a command through the pure domain
functions, writes the result with an optimistic version check, and only
then emits notification events. A lost write race reloads the case and
reapplies the command; notification failures never affect the outcome.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Tuple

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from domain import engagement, lifecycle
from domain.errors import (
    CaseEngineError,
    ConflictingStateException,
    NotFoundException,
    ReferenceCollisionException
)
from domain.events import CaseEvent
from models.base import utc_now
from models.entities import ActorContext, Case, CaseFields
from models.enums import CaseKind, NoteVisibility, SentimentAction
from models.responses import SentimentCounts
from utils.retry import with_bounded_retry
from .reference import ReferenceGenerator

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Mutation = Callable[[Case], Tuple[Optional[Case], List[CaseEvent]]]


class CaseEngine:
    """Executes case commands against the case record store."""

    def __init__(
        self,
        store,
        settings,
        emitter=None,
        reference_generator: Optional[ReferenceGenerator] = None,
        clock: Callable = utc_now,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            store: Case record store (see services.mongodb.MongoDBService)
            settings: EngineSettings
            emitter: Optional NotificationEmitter
            reference_generator: Defaults to a generator over ``store``
            clock: Returns the current aware UTC datetime
            sleep: Used between reference retries
        """
        self.store = store
        self.settings = settings
        self.emitter = emitter
        self.references = reference_generator or ReferenceGenerator(store)
        self._clock = clock
        self._sleep = sleep

    @contextmanager
    def _operation(self, name: str, **attributes) -> Iterator[trace.Span]:
        """Run an engine operation inside a span, recording domain failures."""
        with tracer.start_as_current_span(
            name, record_exception=False, set_status_on_exception=False
        ) as span:
            span.set_attributes({k: v for k, v in attributes.items() if v is not None})
            try:
                yield span
            except CaseEngineError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, e.message))
                span.set_attribute("case.error_type", e.error_type)
                logger.info(
                    f"{name} rejected",
                    extra={
                        "extra_fields": {
                            "operation": name,
                            "error_type": e.error_type,
                            "error": e.message,
                            **{k: v for k, v in attributes.items() if v is not None}
                        }
                    }
                )
                raise
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, case_id: str) -> Case:
        case = self.store.find_case(case_id)
        if case is None:
            raise NotFoundException(f"Case {case_id} not found")
        return case

    def _mutate(self, case_id: str, mutation: Mutation) -> Tuple[Case, List[CaseEvent]]:
        """
        Read-modify-write with an optimistic version check.

        The mutation may return ``None`` to signal that nothing changed, in
        which case no write happens.

        Raises:
            NotFoundException: If the case does not exist or was deleted mid-race
            ConflictingStateException: If every attempt lost the write race
        """
        attempts = self.settings.write_conflict_max_attempts
        for attempt in range(attempts):
            current = self._load(case_id)
            updated, events = mutation(current)
            if updated is None:
                return current, []

            updated.version = current.version + 1
            if self.store.replace_case(updated, current.version):
                return updated, events

            logger.info(
                "Concurrent case update detected, retrying",
                extra={"extra_fields": {"case_id": case_id, "attempt": attempt + 1}}
            )

        raise ConflictingStateException(
            "The case was modified concurrently; please retry",
            current_status=None
        )

    def _emit(self, events: List[CaseEvent]) -> None:
        """Emit events after a successful write; failures are only logged."""
        if self.emitter is None:
            return
        for event in events:
            try:
                self.emitter.emit_event(event)
            except Exception as e:
                logger.error(
                    "Notification emission failed",
                    extra={
                        "extra_fields": {
                            "audience": str(event.recipients.audience),
                            "error": str(e),
                            "error_type": type(e).__name__
                        }
                    },
                    exc_info=True
                )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_case(
        self,
        kind: CaseKind,
        actor: ActorContext,
        fields: Optional[CaseFields] = None,
        as_draft: bool = False
    ) -> Case:
        """
        Create a case with a freshly issued reference.

        Reference issuance and insert are retried together when the
        reference collides with an existing case.

        Raises:
            ForbiddenException: Actor may not submit
            ValidationException: Missing or foreign fields
            StoreUnavailableException: Counter or insert failed
            ReferenceCollisionException: Every attempt collided
        """
        fields = fields or CaseFields()
        kind = CaseKind(kind)

        with self._operation("case.create", **{"case.kind": kind.value, "case.as_draft": as_draft}) as span:
            lifecycle.validate_new_case(kind, actor, fields, as_draft)

            def issue_and_insert():
                now = self._clock()
                case_ref = self.references.next(now.year)
                result = lifecycle.build_new_case(kind, actor, fields, as_draft, case_ref, self.settings, now)
                self.store.insert_case(result.case)
                return result

            result = with_bounded_retry(
                issue_and_insert,
                retry_on=ReferenceCollisionException,
                max_attempts=self.settings.reference_max_attempts,
                base_delay=self.settings.reference_retry_delay,
                sleep=self._sleep,
                operation_name="case creation"
            )

            case = result.case
            span.set_attributes({"case.id": case.id, "case.ref": case.case_ref, "case.status": case.status})
            logger.info(
                "Case created",
                extra={
                    "extra_fields": {
                        "case_id": case.id,
                        "case_ref": case.case_ref,
                        "kind": case.kind,
                        "status": case.status
                    }
                }
            )

        self._emit(result.events)
        return case

    def transition(self, case_id: str, command, actor: ActorContext) -> Case:
        """
        Apply a typed transition command.

        Raises:
            NotFoundException, ForbiddenException, ConflictingStateException,
            ValidationException, StoreUnavailableException
        """
        with self._operation(
            "case.transition",
            **{"case.id": case_id, "case.command": command.command, "actor.role": actor.role}
        ) as span:
            def mutation(current: Case):
                result = lifecycle.apply_command(current, command, actor, self.settings, self._clock())
                return result.case, result.events

            case, events = self._mutate(case_id, mutation)
            span.set_attribute("case.status", case.status)
            logger.info(
                "Case transition applied",
                extra={
                    "extra_fields": {
                        "case_id": case.id,
                        "command": command.command,
                        "status": case.status,
                        "actor_id": actor.actor_id
                    }
                }
            )

        self._emit(events)
        return lifecycle.view_for(case, actor)

    def add_note(
        self,
        case_id: str,
        content: str,
        visibility: Optional[NoteVisibility],
        actor: ActorContext
    ) -> Case:
        """
        Append a note; never changes status or history.

        Raises:
            NotFoundException, ForbiddenException, ValidationException
        """
        with self._operation("case.add_note", **{"case.id": case_id, "actor.role": actor.role}):
            def mutation(current: Case):
                result = lifecycle.add_note(current, content, visibility, actor, self.settings, self._clock())
                return result.case, result.events

            case, events = self._mutate(case_id, mutation)

        self._emit(events)
        return lifecycle.view_for(case, actor)

    def delete_case(self, case_id: str, actor: ActorContext) -> None:
        """
        Delete a case regardless of status.

        Raises:
            NotFoundException: Case missing
            ForbiddenException: Actor is neither owner nor admin
        """
        with self._operation("case.delete", **{"case.id": case_id, "actor.role": actor.role}):
            case = self._load(case_id)
            lifecycle.check_delete_permission(case, actor)
            if not self.store.delete_case(case_id):
                raise NotFoundException(f"Case {case_id} not found")

            logger.warning(
                "Case deleted",
                extra={
                    "extra_fields": {
                        "case_id": case_id,
                        "case_ref": case.case_ref,
                        "actor_id": actor.actor_id
                    }
                }
            )

    def get_case(self, case_id: str, actor: ActorContext) -> Case:
        """
        Load a case as seen by the actor.

        Raises:
            NotFoundException, ForbiddenException
        """
        with self._operation("case.get", **{"case.id": case_id}):
            return lifecycle.view_for(self._load(case_id), actor)

    # ------------------------------------------------------------------
    # Public engagement
    # ------------------------------------------------------------------

    def toggle_sentiment(self, case_id: str, action: SentimentAction, identifier: str) -> SentimentCounts:
        """
        Apply an idempotent like/dislike toggle to a public case.

        Raises:
            NotFoundException: Case missing or not public
        """
        with self._operation("case.sentiment", **{"case.id": case_id, "sentiment.action": str(action)}):
            def mutation(current: Case):
                updated = engagement.apply_sentiment(current, action, identifier)
                if updated.liked_by == current.liked_by and updated.disliked_by == current.disliked_by:
                    return None, []
                return updated, []

            case, _ = self._mutate(case_id, mutation)
            return SentimentCounts(likes=case.likes, dislikes=case.dislikes)

    def record_view(self, case_id: str, identifier: str) -> int:
        """
        Count a deduplicated view of a public case.

        Raises:
            ForbiddenException: Public viewing disabled
            NotFoundException: Case missing or not public
        """
        return self.view_public_case(case_id, identifier).views

    def view_public_case(self, case_id: str, identifier: str) -> Case:
        """Record a view and return the public case."""
        with self._operation("case.view", **{"case.id": case_id}):
            engagement.ensure_public_view_allowed(self.settings)

            def mutation(current: Case):
                return engagement.apply_view(current, identifier), []

            case, _ = self._mutate(case_id, mutation)
            return case

    def available_commands(self, case: Case, actor: ActorContext) -> List[str]:
        """Commands the actor may issue against the case in its current state."""
        return lifecycle.available_commands(case, actor)
