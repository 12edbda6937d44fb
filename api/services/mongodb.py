# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer: case record store with connection pooling.
"""

import os
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    ExecutionTimeout
)
from bson import ObjectId
from bson.errors import InvalidId

from domain.errors import ReferenceCollisionException, StoreUnavailableException
from models.entities import Case

logger = logging.getLogger(__name__)

CASES = "cases"
COUNTERS = "counters"
USERS = "users"
NOTIFICATIONS = "notifications"

ADMIN_ROLES = ("admin", "staff")


class MongoDBService:
    """MongoDB service implementing the case record store with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 timeout_ms: Optional[int] = None, client: Optional[MongoClient] = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/case_lifecycle_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'case_lifecycle_dev')
        self._client: Optional[MongoClient] = client
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.timeout_ms = timeout_ms or int(os.getenv('MONGODB_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.timeout_ms,
                    timeoutMS=self.timeout_ms,
                    tz_aware=True,
                    retryWrites=True,
                    retryReads=True
                )
                logger.info("MongoDB client created")
            except ConnectionFailure as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise StoreUnavailableException("Case store is unavailable")

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    @contextmanager
    def _store_call(self, operation: str) -> Iterator[None]:
        """Map driver timeouts and connection errors to StoreUnavailableException."""
        try:
            yield
        except (ConnectionFailure, ExecutionTimeout) as e:
            logger.error(
                "Case store call failed",
                extra={
                    "extra_fields": {
                        "operation": operation,
                        "error": str(e),
                        "error_type": type(e).__name__
                    }
                }
            )
            raise StoreUnavailableException(f"Case store is unavailable ({operation})")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> Optional[ObjectId]:
        """Convert string ID to ObjectId, or None when malformed."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            return None

    # Case records

    def find_case(self, case_id: str) -> Optional[Case]:
        """Load a case by ID; malformed IDs are treated as not found."""
        object_id = self._validate_object_id(case_id)
        if object_id is None:
            logger.debug(f"Invalid case ID {case_id}")
            return None

        with self._store_call("find_case"):
            document = self.get_collection(CASES).find_one({"_id": object_id})

        if document is None:
            logger.debug(f"Case {case_id} not found")
            return None
        return Case.from_document(document)

    def insert_case(self, case: Case) -> Case:
        """
        Insert a new case.

        Raises:
            ReferenceCollisionException: If the caseRef is already taken
            StoreUnavailableException: If the store cannot be reached
        """
        try:
            with self._store_call("insert_case"):
                self.get_collection(CASES).insert_one(case.to_document())
        except DuplicateKeyError as e:
            logger.warning(
                "Duplicate case reference on insert",
                extra={"extra_fields": {"case_ref": case.case_ref, "error": str(e)}}
            )
            raise ReferenceCollisionException(
                f"Case reference {case.case_ref} already exists",
                case_ref=case.case_ref
            )

        logger.info(f"Created case {case.id} ({case.case_ref})")
        return case

    def replace_case(self, case: Case, expected_version: int) -> bool:
        """
        Replace a case only if its stored version still matches.

        Returns:
            True if the write won, False if the version moved or the case is gone
        """
        object_id = self._validate_object_id(case.id)
        if object_id is None:
            return False

        with self._store_call("replace_case"):
            result = self.get_collection(CASES).replace_one(
                {"_id": object_id, "version": expected_version},
                case.to_document()
            )

        if result.matched_count == 0:
            logger.debug(
                "Case version check failed",
                extra={"extra_fields": {"case_id": case.id, "expected_version": expected_version}}
            )
            return False
        return True

    def delete_case(self, case_id: str) -> bool:
        """Remove a case and its embedded engagement data."""
        object_id = self._validate_object_id(case_id)
        if object_id is None:
            return False

        with self._store_call("delete_case"):
            result = self.get_collection(CASES).delete_one({"_id": object_id})

        if result.deleted_count > 0:
            logger.warning(f"Deleted case {case_id}")
            return True
        return False

    # Counters

    def increment_counter(self, key: str) -> int:
        """
        Atomically increment a named counter, creating it on first use.

        Returns:
            The counter value after the increment
        """
        with self._store_call("increment_counter"):
            document = self.get_collection(COUNTERS).find_one_and_update(
                {"_id": key},
                {"$inc": {"seq": 1}},
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
        return int(document["seq"])

    # Notification recipients and in-app notifications

    def find_admin_ids(self) -> List[str]:
        """IDs of every admin and staff user."""
        with self._store_call("find_admin_ids"):
            cursor = self.get_collection(USERS).find(
                {"role": {"$in": list(ADMIN_ROLES)}},
                {"_id": 1}
            )
            return [str(doc["_id"]) for doc in cursor]

    def insert_notifications(self, documents: List[Dict[str, Any]]) -> int:
        """Insert in-app notification documents."""
        if not documents:
            return 0
        with self._store_call("insert_notifications"):
            result = self.get_collection(NOTIFICATIONS).insert_many(documents)
        return len(result.inserted_ids)

    # Index Management

    def create_indexes(self) -> None:
        """Create indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            cases = self.get_collection(CASES)
            cases.create_index("caseRef", unique=True)
            cases.create_index([("ownerId", ASCENDING), ("createdAt", DESCENDING)])
            cases.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            cases.create_index([("isPublic", ASCENDING), ("createdAt", DESCENDING)])

            users = self.get_collection(USERS)
            users.create_index("role")

            notifications = self.get_collection(NOTIFICATIONS)
            notifications.create_index([("recipientId", ASCENDING), ("read", ASCENDING), ("createdAt", DESCENDING)])

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
