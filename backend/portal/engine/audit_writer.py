"""Audit Writer - Append-only audit events"""
from typing import Any, Dict, Optional

from ..domain.models import AuditEvent, ActorSnapshot, ActorContext
from ..domain.enums import AuditEntityType, AuditEventType
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_event_id
from ..utils.time import utc_now
from ..utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


class AuditWriter:
    """
    Write audit events (append-only)

    All state changes on requests and projects produce audit events.
    """

    def __init__(self):
        self.repo = AuditRepository()

    def write_event(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
        event_type: AuditEventType,
        actor: ActorContext,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None
    ) -> AuditEvent:
        """Write a single audit event"""
        event = AuditEvent(
            audit_event_id=generate_audit_event_id(),
            entity_type=entity_type,
            entity_id=str(entity_id),
            event_type=event_type,
            actor=ActorSnapshot.from_actor(actor),
            details=details or {},
            timestamp=utc_now(),
            correlation_id=correlation_id or get_correlation_id()
        )

        return self.repo.create_event(event)

    def write_request_event(
        self,
        request_id: str,
        event_type: AuditEventType,
        actor: ActorContext,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Write an event on a client request"""
        return self.write_event(
            entity_type=AuditEntityType.REQUEST,
            entity_id=request_id,
            event_type=event_type,
            actor=actor,
            details=details
        )

    def write_project_event(
        self,
        project_id: int,
        event_type: AuditEventType,
        actor: ActorContext,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Write an event on a project"""
        return self.write_event(
            entity_type=AuditEntityType.PROJECT,
            entity_id=str(project_id),
            event_type=event_type,
            actor=actor,
            details=details
        )

    def write_department_decision(
        self,
        request_id: str,
        actor: ActorContext,
        department: str,
        approved: bool
    ) -> AuditEvent:
        """Write a department approve/reject event"""
        return self.write_request_event(
            request_id,
            AuditEventType.DEPARTMENT_APPROVE if approved else AuditEventType.DEPARTMENT_REJECT,
            actor,
            details={"department": department}
        )

    def write_conversion_failed(
        self,
        request_id: str,
        actor: ActorContext,
        error: str,
        project_id: Optional[int] = None
    ) -> AuditEvent:
        """Record a failed conversion for operator follow-up"""
        return self.write_request_event(
            request_id,
            AuditEventType.CONVERSION_FAILED,
            actor,
            details={"error": error, "project_id": project_id}
        )
