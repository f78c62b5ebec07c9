"""
Metadata store collaborators backed by MongoDB.

The pipelines only ever call ``get`` and ``update`` on ``VideoRepository``;
the rest serves the plain CRUD routes.
"""

import logging
from typing import List, Optional

from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from clipstore.core.exceptions import BadRequestError, NotFoundError, PersistenceError
from clipstore.database.schemas.metadata import VideoRecord
from clipstore.database.schemas.user import UserInDB

logger = logging.getLogger(__name__)


class VideoRepository:
    def __init__(self, collection: Collection):
        self.collection = collection

    def get(self, video_id: str) -> VideoRecord:
        try:
            doc = self.collection.find_one({"_id": video_id})
        except PyMongoError as e:
            raise PersistenceError("Couldn't fetch the video metadata", detail=repr(e)) from e

        if doc is None:
            raise NotFoundError(detail=f"video_id={video_id}")
        return VideoRecord.model_validate(doc)

    def update(self, record: VideoRecord) -> None:
        try:
            result = self.collection.replace_one({"_id": record.id}, record.to_document())
        except PyMongoError as e:
            logger.exception(f"Failed to update video | video_id={record.id}")
            raise PersistenceError(detail=repr(e)) from e

        if result.matched_count == 0:
            raise PersistenceError(detail=f"No video found for video_id={record.id}")
        logger.info(f"Video updated | video_id={record.id}")

    def create(self, record: VideoRecord) -> VideoRecord:
        try:
            self.collection.insert_one(record.to_document())
        except PyMongoError as e:
            raise PersistenceError("Couldn't create the video", detail=repr(e)) from e
        logger.info(f"Video created | video_id={record.id} user_id={record.user_id}")
        return record

    def list_for_owner(self, user_id: str) -> List[VideoRecord]:
        try:
            docs = list(self.collection.find({"user_id": user_id}).sort("created_at", -1))
        except PyMongoError as e:
            raise PersistenceError("Couldn't list videos", detail=repr(e)) from e
        return [VideoRecord.model_validate(doc) for doc in docs]

    def delete(self, video_id: str) -> None:
        try:
            result = self.collection.delete_one({"_id": video_id})
        except PyMongoError as e:
            raise PersistenceError("Couldn't delete the video", detail=repr(e)) from e
        if result.deleted_count == 0:
            raise NotFoundError(detail=f"video_id={video_id}")


class UserRepository:
    def __init__(self, collection: Collection):
        self.collection = collection

    def get_by_email(self, email: str) -> Optional[UserInDB]:
        try:
            doc = self.collection.find_one({"email": email})
        except PyMongoError as e:
            raise PersistenceError("Couldn't fetch the user", detail=repr(e)) from e
        return UserInDB.model_validate(doc) if doc else None

    def create(self, user: UserInDB) -> UserInDB:
        try:
            self.collection.insert_one(user.model_dump(by_alias=True))
        except DuplicateKeyError as e:
            raise BadRequestError("User already exists") from e
        except PyMongoError as e:
            raise PersistenceError("Couldn't create the user", detail=repr(e)) from e
        return user

