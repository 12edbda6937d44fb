# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Engine configuration.

Settings are read once by the process bootstrap and passed explicitly
into the case engine and the HTTP layer.
"""

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class EngineSettings:
    """Case engine configuration settings."""
    auto_accept_submissions: bool = False
    allow_public_view: bool = False
    reference_max_attempts: int = 3
    reference_retry_delay: float = 0.05
    write_conflict_max_attempts: int = 5
    store_timeout_ms: int = 5000
    identifier_salt: str = 'case-lifecycle-dev-salt'
    base_url: str = 'http://localhost:5000'
    admin_link_prefix: str = '/admin/cases'
    owner_link_prefix: str = '/cases'

    def __post_init__(self):
        if self.reference_max_attempts < 1:
            raise ValueError('reference_max_attempts must be at least 1')
        if self.write_conflict_max_attempts < 1:
            raise ValueError('write_conflict_max_attempts must be at least 1')
        if self.reference_retry_delay < 0:
            raise ValueError('reference_retry_delay cannot be negative')
        if self.store_timeout_ms <= 0:
            raise ValueError('store_timeout_ms must be positive')

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Build settings from environment variables.

        Returns:
            EngineSettings: Settings with environment overrides applied
        """
        return cls(
            auto_accept_submissions=_env_flag('AUTO_ACCEPT_SUBMISSIONS'),
            allow_public_view=_env_flag('ALLOW_PUBLIC_VIEW'),
            reference_max_attempts=int(os.getenv('REFERENCE_MAX_ATTEMPTS', '3')),
            reference_retry_delay=float(os.getenv('REFERENCE_RETRY_DELAY', '0.05')),
            write_conflict_max_attempts=int(os.getenv('WRITE_CONFLICT_MAX_ATTEMPTS', '5')),
            store_timeout_ms=int(os.getenv('MONGODB_TIMEOUT_MS', '5000')),
            identifier_salt=os.getenv('IDENTIFIER_SALT', 'case-lifecycle-dev-salt'),
            base_url=os.getenv('BASE_URL', 'http://localhost:5000').rstrip('/')
        )
