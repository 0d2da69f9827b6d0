"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
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

    # Client requests collection
    requests = db["requests"]
    requests.create_index("request_id", unique=True)
    requests.create_index([("client", ASCENDING), ("created_at", DESCENDING)])
    requests.create_index("status")
    requests.create_index("updated_at", background=True)

    # Projects collection
    projects = db["projects"]
    projects.create_index("project_id", unique=True)
    # One project per request; a retried conversion replaces an orphan instead of duplicating
    projects.create_index("source_request_id", unique=True, sparse=True)
    projects.create_index("client")
    projects.create_index("status")

    # Project tasks collection
    tasks = db["tasks"]
    tasks.create_index("task_id", unique=True)
    tasks.create_index([("project_id", ASCENDING), ("sprint_number", ASCENDING)])
    tasks.create_index("assigned_to")

    # Directory collections
    employees = db["employees"]
    employees.create_index("employee_ref", unique=True)
    employees.create_index("employee_id", unique=True)
    employees.create_index("email", unique=True)
    employees.create_index("department")

    clients = db["clients"]
    clients.create_index("client_ref", unique=True)
    clients.create_index("contact_email", unique=True)

    # Audit events collection
    audit_events = db["audit_events"]
    audit_events.create_index("audit_event_id", unique=True)
    audit_events.create_index([("entity_type", ASCENDING), ("entity_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_events.create_index("timestamp", background=True)
    audit_events.create_index("correlation_id")

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
