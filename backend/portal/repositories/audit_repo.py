"""Audit Repository - Data access for audit events"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection
from ..domain.models import AuditEvent
from ..domain.enums import AuditEntityType, AuditEventType
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit event operations (append-only)"""

    def __init__(self):
        self._audit_events: Collection = get_collection("audit_events")

    def create_event(self, event: AuditEvent) -> AuditEvent:
        """Create an audit event (append-only)"""
        doc = event.model_dump(mode="json")
        doc["_id"] = event.audit_event_id

        self._audit_events.insert_one(doc)
        logger.info(
            f"Created audit event: {event.event_type.value}",
            extra={
                "action": event.event_type.value,
                "actor_id": event.actor.user_id
            }
        )
        return event

    def get_events_for_entity(
        self,
        entity_type: AuditEntityType,
        entity_id: str,
        event_types: Optional[List[AuditEventType]] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[AuditEvent]:
        """Get audit events for a request or project, newest first"""
        query: Dict[str, Any] = {"entity_type": entity_type.value, "entity_id": entity_id}

        if event_types:
            query["event_type"] = {"$in": [et.value for et in event_types]}

        cursor = self._audit_events.find(query).sort("timestamp", DESCENDING).skip(skip).limit(limit)

        events = []
        for doc in cursor:
            doc.pop("_id", None)
            events.append(AuditEvent.model_validate(doc))

        return events
