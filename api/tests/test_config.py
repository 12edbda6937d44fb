# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for engine settings.
"""

import dataclasses
import pytest

from config import EngineSettings


class TestEngineSettings:
    """Test settings defaults, validation and environment loading."""

    def test_defaults(self):
        settings = EngineSettings()

        assert settings.auto_accept_submissions is False
        assert settings.allow_public_view is False
        assert settings.reference_max_attempts == 3
        assert settings.write_conflict_max_attempts == 5

    def test_settings_are_immutable(self):
        settings = EngineSettings()

        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.allow_public_view = True

    @pytest.mark.parametrize("overrides", [
        {"reference_max_attempts": 0},
        {"write_conflict_max_attempts": 0},
        {"reference_retry_delay": -1.0},
        {"store_timeout_ms": 0},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            EngineSettings(**overrides)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('AUTO_ACCEPT_SUBMISSIONS', 'true')
        monkeypatch.setenv('ALLOW_PUBLIC_VIEW', '1')
        monkeypatch.setenv('REFERENCE_MAX_ATTEMPTS', '7')
        monkeypatch.setenv('MONGODB_TIMEOUT_MS', '1500')
        monkeypatch.setenv('BASE_URL', 'https://cases.example.org/')

        settings = EngineSettings.from_env()

        assert settings.auto_accept_submissions is True
        assert settings.allow_public_view is True
        assert settings.reference_max_attempts == 7
        assert settings.store_timeout_ms == 1500
        assert settings.base_url == 'https://cases.example.org'

    def test_from_env_defaults(self, monkeypatch):
        for name in ('AUTO_ACCEPT_SUBMISSIONS', 'ALLOW_PUBLIC_VIEW', 'REFERENCE_MAX_ATTEMPTS', 'BASE_URL'):
            monkeypatch.delenv(name, raising=False)

        settings = EngineSettings.from_env()

        assert settings.auto_accept_submissions is False
        assert settings.base_url == 'http://localhost:5000'
