"""
MongoDB access for the lifecycle collections: a pooled Motor client, the
indexes each collection relies on, and topology probes used at startup and by
the readiness check.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import IndexModel, ASCENDING, DESCENDING
from pymongo.errors import OperationFailure, PyMongoError

from app_lifecycle.core.config import settings
from app_lifecycle.log.logging import logger

APPLICATIONS = "applications"
DECLINED_APPLICATIONS = "declined_applications"
POSTS = "posts"
ADMIN_NOTIFICATIONS = "admin_notifications"

INDEXES = {
    APPLICATIONS: [
        IndexModel(
            [("post_id", ASCENDING), ("candidate_id", ASCENDING)],
            name="uniq_post_candidate",
            unique=True,
        ),
        IndexModel([("post_id", ASCENDING), ("status", ASCENDING)], name="idx_post_status"),
        IndexModel([("candidate_id", ASCENDING)], name="idx_candidate_id"),
        IndexModel(
            [("status", ASCENDING), ("withdrawal_requested_at", DESCENDING)],
            name="idx_status_withdrawal_requested",
        ),
    ],
    DECLINED_APPLICATIONS: [
        IndexModel([("original_application_id", ASCENDING)], name="idx_original_application"),
        IndexModel([("post_id", ASCENDING)], name="idx_post_id"),
        IndexModel([("candidate_id", ASCENDING)], name="idx_candidate_id"),
    ],
    POSTS: [
        IndexModel([("post_id", ASCENDING)], name="uniq_post_code", unique=True),
    ],
    ADMIN_NOTIFICATIONS: [
        IndexModel([("created_at", DESCENDING)], name="idx_created_at"),
        IndexModel([("status", ASCENDING)], name="idx_status"),
        IndexModel([("read", ASCENDING)], name="idx_read"),
        IndexModel([("application_id", ASCENDING), ("status", ASCENDING)], name="idx_application_status"),
    ],
}


class DatabaseManager:
    """
    Manages MongoDB connections with connection pooling and index management.
    """

    _instance: Optional["DatabaseManager"] = None
    _client: Optional[AsyncIOMotorClient] = None
    _database: Optional[AsyncIOMotorDatabase] = None
    _indexes_created: bool = False

    def __new__(cls) -> "DatabaseManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def client(self) -> AsyncIOMotorClient:
        """Get or create the MongoDB client with connection pooling."""
        if self._client is None:
            self._client = AsyncIOMotorClient(
                settings.mongodb,
                # Connection pool settings
                maxPoolSize=settings.mongo_max_pool_size,
                minPoolSize=settings.mongo_min_pool_size,
                maxIdleTimeMS=settings.mongo_max_idle_time_ms,
                # Timeouts
                connectTimeoutMS=settings.mongo_connect_timeout_ms,
                serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
                socketTimeoutMS=settings.mongo_socket_timeout_ms,
                retryWrites=True,
                retryReads=True,
            )
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """Get the configured database."""
        if self._database is None:
            self._database = self.client[settings.mongodb_database]
        return self._database

    async def create_indexes(self) -> None:
        """
        Create the indexes of every lifecycle collection (idempotent per process).

        The unique (post_id, candidate_id) index is what finally rules out a
        candidate applying twice to the same post.
        """
        if self._indexes_created:
            return

        for collection, indexes in INDEXES.items():
            try:
                await self.database[collection].create_indexes(indexes)
            except OperationFailure as e:
                logger.error(
                    "Failed to create indexes on {collection}: {error}",
                    collection=collection,
                    error=str(e),
                    event_type="index_creation_failed",
                )
                raise
            logger.info(f"Created {len(indexes)} indexes for {collection} collection")

        self._indexes_created = True

    async def supports_transactions(self) -> bool:
        """Multi-document transactions need a replica set or a sharded cluster."""
        try:
            hello = await self.client.admin.command("hello")
        except PyMongoError as e:
            logger.warning(f"Could not inspect MongoDB topology: {e}")
            return False
        return bool(hello.get("setName")) or hello.get("msg") == "isdbgrid"

    async def ping(self) -> bool:
        """
        Check if the database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise.
        """
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"Database ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close the database connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            self._indexes_created = False
            logger.info("Database connection closed")


# Singleton instance
db_manager = DatabaseManager()


async def init_database() -> None:
    """
    Connect, create indexes and check that the topology matches the
    transaction setting. Called from the application lifespan.
    """
    logger.info("Initializing database connection...")

    if not await db_manager.ping():
        raise RuntimeError("Failed to connect to database")
    logger.info("Database connection established")

    await db_manager.create_indexes()

    if settings.lifecycle_atomic_transitions and not await db_manager.supports_transactions():
        logger.warning(
            "MongoDB is not a replica set; atomic lifecycle transitions will fail. "
            "Set LIFECYCLE_ATOMIC_TRANSITIONS=false for a standalone server.",
            event_type="transactions_unsupported",
        )


async def close_database() -> None:
    """
    Close database connection.

    Call this during application shutdown.
    """
    await db_manager.close()


def get_database() -> AsyncIOMotorDatabase:
    return db_manager.database
