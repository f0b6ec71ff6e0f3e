"""
User repository for database operations.

Provides async CRUD operations for user documents using pymongo's
asynchronous API against the ``users`` collection.
"""

import structlog
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from api.src.models.user import UserResponse

logger = structlog.get_logger(__name__)

COLLECTION_NAME = "users"


def utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision BSON dates store."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_object_id(user_id: str) -> Optional[ObjectId]:
    """Return the ObjectId for a path id, or None if it is malformed."""
    if not ObjectId.is_valid(user_id):
        return None
    return ObjectId(user_id)


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, database: AsyncDatabase):
        """
        Initialize user repository.

        Args:
            database: MongoDB database holding the users collection
        """
        self.collection = database[COLLECTION_NAME]

    async def ensure_indexes(self) -> None:
        """Create the unique email index and the listing sort index."""
        await self.collection.create_index([("email", ASCENDING)], unique=True, name="uniq_email")
        await self.collection.create_index(
            [("created_at", DESCENDING), ("_id", DESCENDING)], name="created_at_desc"
        )
        logger.info("user_indexes_ensured", collection=COLLECTION_NAME)

    async def create_user(
        self,
        name: str,
        email: str,
        age: Optional[int] = None
    ) -> UserResponse:
        """
        Create a new user.

        Args:
            name: Display name
            email: Email address
            age: Age in years

        Returns:
            Created user

        Raises:
            ValueError: If the email already exists
        """
        document = {
            "name": name,
            "email": email,
            "age": age,
            "created_at": utcnow(),
            "updated_at": None,
        }

        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError:
            logger.warning("email_already_exists", email=email)
            raise ValueError(f"Email '{email}' already exists")
        except Exception as e:
            logger.error("user_create_failed", error=str(e), email=email)
            raise

        document["_id"] = result.inserted_id
        logger.info("user_created", user_id=str(result.inserted_id), email=email)
        return UserResponse.from_document(document)

    async def get_user_by_id(self, user_id: str) -> Optional[UserResponse]:
        """
        Get user by ID.

        Args:
            user_id: User ID (ObjectId hex string)

        Returns:
            User or None if not found
        """
        oid = parse_object_id(user_id)
        if oid is None:
            logger.debug("user_id_malformed", user_id=user_id)
            return None

        try:
            document = await self.collection.find_one({"_id": oid})
        except Exception as e:
            logger.error("user_get_by_id_failed", error=str(e), user_id=user_id)
            raise

        if not document:
            logger.debug("user_not_found", user_id=user_id)
            return None
        return UserResponse.from_document(document)

    async def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        """
        Get user by email.

        Args:
            email: Email address

        Returns:
            User or None if not found
        """
        try:
            document = await self.collection.find_one({"email": email})
        except Exception as e:
            logger.error("user_get_by_email_failed", error=str(e), email=email)
            raise

        if not document:
            logger.debug("user_not_found", email=email)
            return None
        return UserResponse.from_document(document)

    async def update_user(
        self,
        user_id: str,
        changes: Dict[str, Any]
    ) -> Optional[UserResponse]:
        """
        Update user fields.

        Args:
            user_id: User ID
            changes: Fields to set; an empty dict leaves the document untouched

        Returns:
            Updated user or None if not found

        Raises:
            ValueError: If the new email already exists
        """
        oid = parse_object_id(user_id)
        if oid is None:
            logger.debug("user_id_malformed", user_id=user_id)
            return None

        if not changes:
            return await self.get_user_by_id(user_id)

        update = dict(changes)
        update["updated_at"] = utcnow()

        try:
            document = await self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.warning("email_already_exists", email=changes.get("email"))
            raise ValueError(f"Email '{changes.get('email')}' already exists")
        except Exception as e:
            logger.error("user_update_failed", error=str(e), user_id=user_id)
            raise

        if not document:
            logger.debug("user_not_found", user_id=user_id)
            return None

        logger.info("user_updated", user_id=user_id, fields=sorted(changes))
        return UserResponse.from_document(document)

    async def delete_user(self, user_id: str) -> bool:
        """
        Delete user.

        Args:
            user_id: User ID

        Returns:
            True if deleted, False if not found
        """
        oid = parse_object_id(user_id)
        if oid is None:
            logger.debug("user_id_malformed", user_id=user_id)
            return False

        try:
            result = await self.collection.delete_one({"_id": oid})
        except Exception as e:
            logger.error("user_delete_failed", error=str(e), user_id=user_id)
            raise

        deleted = result.deleted_count == 1
        if deleted:
            logger.info("user_deleted", user_id=user_id)
        else:
            logger.debug("user_not_found", user_id=user_id)
        return deleted

    async def list_users(
        self,
        limit: int = 100,
        offset: int = 0
    ) -> List[UserResponse]:
        """
        List users with pagination, newest first.

        Args:
            limit: Maximum number of users to return
            offset: Number of users to skip

        Returns:
            List of users
        """
        try:
            cursor = (
                self.collection.find({})
                .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
                .skip(offset)
                .limit(limit)
            )
            return [UserResponse.from_document(document) async for document in cursor]
        except Exception as e:
            logger.error("user_list_failed", error=str(e), limit=limit, offset=offset)
            raise

    async def count_users(self) -> int:
        """Count total users."""
        try:
            return await self.collection.count_documents({})
        except Exception as e:
            logger.error("user_count_failed", error=str(e))
            raise
