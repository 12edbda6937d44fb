#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Script to create the MongoDB indexes the case store relies on.

The unique index on case references must exist before the API accepts
submissions; it is what turns a reference collision into a retry.
"""

import sys
import logging

from observability.config import setup_structured_logging
from services.mongodb import get_mongodb_service, close_mongodb_connection

logger = logging.getLogger(__name__)


def main() -> int:
    """Create MongoDB indexes."""
    setup_structured_logging('staging')
    try:
        logger.info("Starting MongoDB index creation")
        mongodb_service = get_mongodb_service()

        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error("MongoDB is not healthy", extra={"extra_fields": health})
            return 1

        mongodb_service.create_indexes()
        logger.info(
            "MongoDB indexes created",
            extra={"extra_fields": {"database": health['database']}}
        )
        return 0

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}", exc_info=True)
        return 1
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
