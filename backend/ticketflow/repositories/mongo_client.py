"""MongoDB Client - Connection, Collection and Transaction Management"""
from typing import Any, Callable, Dict, Optional, TypeVar
from pymongo import MongoClient as PyMongoClient
from pymongo.client_session import ClientSession
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None

# Partial unique index backing the single ACTIVE workflow per tenant
ACTIVE_WORKFLOW_INDEX = "uniq_active_workflow_per_tenant"


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            tz_aware=True,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def run_in_transaction(callback: Callable[[Optional[ClientSession]], T]) -> T:
    """
    Run callback inside a multi-document transaction
    
    The callback receives the session (or None when transactions are
    disabled) and must pass it to every repository call it makes.
    with_transaction retries the callback on transient errors, so it
    must not have side effects outside the database.
    """
    if not settings.mongo_use_transactions:
        return callback(None)
    
    client = get_client()
    with client.start_session() as session:
        return session.with_transaction(callback)


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")
    
    # Workflows collection
    workflows = db["workflows"]
    workflows.create_index("workflow_id", unique=True)
    workflows.create_index([("tenant_id", ASCENDING), ("deleted_at", ASCENDING), ("created_at", DESCENDING)])
    # One protected system default per tenant
    workflows.create_index(
        [("tenant_id", ASCENDING), ("is_system_default", ASCENDING)],
        unique=True,
        partialFilterExpression={"is_system_default": True},
        name="uniq_system_default_per_tenant"
    )
    # At most one ACTIVE workflow per tenant
    workflows.create_index(
        [("tenant_id", ASCENDING), ("status", ASCENDING)],
        unique=True,
        partialFilterExpression={"status": "ACTIVE"},
        name=ACTIVE_WORKFLOW_INDEX
    )
    
    # Relational transitions
    transitions = db["workflow_transitions"]
    transitions.create_index("transition_id", unique=True)
    transitions.create_index(
        [("workflow_id", ASCENDING), ("from_state", ASCENDING), ("to_state", ASCENDING)],
        unique=True
    )
    
    # Tickets collection
    tickets = db["tickets"]
    tickets.create_index("ticket_id", unique=True)
    tickets.create_index([("tenant_id", ASCENDING), ("workflow_id", ASCENDING)])
    tickets.create_index([("tenant_id", ASCENDING), ("assigned_to_id", ASCENDING)])
    tickets.create_index([("tenant_id", ASCENDING), ("requester_id", ASCENDING)])
    tickets.create_index("created_at", background=True)
    
    # Append-only audit collections
    executions = db["workflow_executions"]
    executions.create_index("execution_id", unique=True)
    executions.create_index([("ticket_id", ASCENDING), ("executed_at", DESCENDING)])
    
    history = db["ticket_history"]
    history.create_index("history_id", unique=True)
    history.create_index([("ticket_id", ASCENDING), ("created_at", DESCENDING)])
    
    comments = db["comments"]
    comments.create_index("comment_id", unique=True)
    comments.create_index([("ticket_id", ASCENDING), ("created_at", ASCENDING)])
    
    # Notification outbox collection
    notification_outbox = db["notification_outbox"]
    notification_outbox.create_index("notification_id", unique=True)
    notification_outbox.create_index([("status", ASCENDING), ("next_retry_at", ASCENDING)])
    notification_outbox.create_index("ticket_id")
    
    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
