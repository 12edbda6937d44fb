# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for case reference generation.
"""

import threading
import pytest
from unittest.mock import Mock

from domain.errors import StoreUnavailableException
from services.reference import ReferenceGenerator, counter_key, format_reference


class TestReferenceFormat:
    """Test reference formatting."""

    def test_zero_padded(self):
        assert format_reference(2025, 1) == "C-2025-0001"
        assert format_reference(2025, 42) == "C-2025-0042"

    def test_grows_past_four_digits(self):
        assert format_reference(2025, 12345) == "C-2025-12345"

    def test_counter_key(self):
        assert counter_key(2026) == "caseRef_2026"


class TestReferenceGenerator:
    """Test reference issuance against a counter store."""

    def test_sequence_per_year(self, store):
        """Each year has its own sequence starting at 1."""
        generator = ReferenceGenerator(store)

        assert generator.next(2025) == "C-2025-0001"
        assert generator.next(2025) == "C-2025-0002"
        assert generator.next(2026) == "C-2026-0001"
        assert store.counters == {"caseRef_2025": 2, "caseRef_2026": 1}

    def test_defaults_to_current_year(self):
        store = Mock()
        store.increment_counter.return_value = 3
        generator = ReferenceGenerator(store)

        reference = generator.next()

        key = store.increment_counter.call_args[0][0]
        year = int(key.split("_")[1])
        assert reference == f"C-{year}-0003"

    def test_store_failure_propagates(self):
        store = Mock()
        store.increment_counter.side_effect = StoreUnavailableException("down")

        with pytest.raises(StoreUnavailableException):
            ReferenceGenerator(store).next(2025)

    def test_concurrent_issuance_is_contiguous(self, store):
        """N concurrent callers receive exactly the sequences 1..N."""
        generator = ReferenceGenerator(store)
        issued = []
        lock = threading.Lock()

        def issue():
            for _ in range(25):
                reference = generator.next(2025)
                with lock:
                    issued.append(reference)

        threads = [threading.Thread(target=issue) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(issued) == 200
        assert sorted(issued) == [format_reference(2025, seq) for seq in range(1, 201)]
