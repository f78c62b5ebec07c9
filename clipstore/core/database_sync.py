import logging

from pymongo import MongoClient

from clipstore.core.config import Settings

logger = logging.getLogger(__name__)


class MongoDBSync:
    def __init__(self):
        self.client = None
        self.db = None

    def connect(self, settings: Settings):
        if self.db is not None:
            return  # already connected

        # MongoClient connects lazily, so this never blocks on the server
        self.client = MongoClient(settings.MONGO_URI)
        self.db = self.client[settings.MONGO_DB]
        logger.info(f"MongoDB client ready: db={settings.MONGO_DB}")

    def close(self):
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self.db = None


mongodb_sync = MongoDBSync()
