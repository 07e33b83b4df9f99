import logging

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import OperationFailure

from collavio.config import settings

logger = logging.getLogger(__name__)

# Sort could not be served by an index and overflowed the in-memory limit
MISSING_INDEX_CODES = {292}
MISSING_INDEX_PHRASES = ("no index", "memory limit", "add an index")

# IllegalOperation: standalone servers refuse transactions
TRANSACTIONS_UNSUPPORTED = 20


def connect_db(uri: str = None, db_name: str = None):
    """Build the Mongo client and database handle for this process."""
    client = AsyncIOMotorClient(uri or settings.MONGODB_URI)
    db = client[db_name or settings.MONGODB_DB_NAME]
    return client, db


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes for lookups, ordering and uniqueness."""
    # Users: email lookup when adding members
    await db.users.create_index("email")

    # Workspaces: membership queries
    await db.workspaces.create_index("members")
    await db.workspaces.create_index("owner")

    # Videos: workspace listing ordered by recency
    await db.videos.create_index(
        [("workspace_id", 1), ("updated_at", -1)],
        name="workspace_updated",
    )

    # Versions: one row per number per video
    await db.video_versions.create_index(
        [("video_id", 1), ("version_number", -1)],
        unique=True,
        name="video_version_unique",
    )

    # Comments: timeline order per video
    await db.comments.create_index([("video_id", 1), ("timestamp", 1)])

    # Notifications
    await db.notifications.create_index([("user_id", 1), ("created_at", -1)])
    await db.notifications.create_index([("user_id", 1), ("read", 1)])


def is_missing_index_error(exc: Exception) -> bool:
    """True when a query failed because its sort has no index to serve it."""
    if not isinstance(exc, OperationFailure):
        return False
    if exc.code in MISSING_INDEX_CODES:
        return True
    message = str(exc).lower()
    return any(phrase in message for phrase in MISSING_INDEX_PHRASES)


async def run_atomic(db: AsyncIOMotorDatabase, operation):
    """Run `operation(session)` as one all-or-nothing transaction.

    With `MONGODB_TRANSACTIONS` off, or on a standalone server that rejects
    transactions, the writes run without a session in the order issued.
    """
    if settings.MONGODB_TRANSACTIONS:
        try:
            async with await db.client.start_session() as session:
                return await session.with_transaction(operation)
        except OperationFailure as e:
            if e.code != TRANSACTIONS_UNSUPPORTED:
                raise
            logger.warning(f"MongoDB deployment does not support transactions: {e}")
    return await operation(None)


def get_db(request: Request) -> AsyncIOMotorDatabase:
    return request.app.state.db
