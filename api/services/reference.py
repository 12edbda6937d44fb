# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Case reference generator.

References have the form ``C-<year>-<seq>`` with the sequence zero-padded
to four digits and restarting each calendar year. Issuance is a single
atomic upsert-increment against the counters collection, so concurrent
callers in any process never receive the same sequence number.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from opentelemetry import trace

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def counter_key(year: int) -> str:
    """Counter document ID for a year."""
    return f"caseRef_{year}"


def format_reference(year: int, seq: int) -> str:
    """Format a case reference."""
    return f"C-{year}-{seq:04d}"


class ReferenceGenerator:
    """Issues unique, human-readable case references."""

    def __init__(self, store):
        """
        Args:
            store: Object exposing ``increment_counter(key) -> int``
        """
        self.store = store

    def next(self, year: Optional[int] = None) -> str:
        """
        Issue the next reference for a year.

        Args:
            year: Calendar year, defaults to the current UTC year

        Returns:
            Reference string such as ``C-2025-0001``

        Raises:
            StoreUnavailableException: If the counter cannot be incremented
        """
        if year is None:
            year = datetime.now(timezone.utc).year

        with tracer.start_as_current_span("case.reference.next") as span:
            span.set_attribute("reference.year", year)
            seq = self.store.increment_counter(counter_key(year))
            reference = format_reference(year, seq)
            span.set_attribute("reference.value", reference)

        logger.debug(
            "Issued case reference",
            extra={"extra_fields": {"year": year, "seq": seq, "case_ref": reference}}
        )
        return reference
