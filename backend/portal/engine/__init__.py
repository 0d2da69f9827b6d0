"""Request Lifecycle Engine - The brain of the system"""
from .request_engine import RequestLifecycleEngine
from .sprint_engine import SprintProgressionEngine, SprintAdvanceResult
from .conversion import ConversionTransaction, ConversionResult
from .permission_guard import PermissionGuard
from .audit_writer import AuditWriter

__all__ = [
    "RequestLifecycleEngine",
    "SprintProgressionEngine",
    "SprintAdvanceResult",
    "ConversionTransaction",
    "ConversionResult",
    "PermissionGuard",
    "AuditWriter",
]
