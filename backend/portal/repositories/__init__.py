"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .request_repo import RequestRepository
from .project_repo import ProjectRepository
from .directory_repo import DirectoryRepository
from .counter_repo import CounterRepository
from .audit_repo import AuditRepository

__all__ = [
    "get_database",
    "get_collection",
    "RequestRepository",
    "ProjectRepository",
    "DirectoryRepository",
    "CounterRepository",
    "AuditRepository",
]
