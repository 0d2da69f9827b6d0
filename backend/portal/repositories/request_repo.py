"""Request Repository - Data access for client requests

Every mutation is a single conditional update: the filter carries the status
(and, for ledger entries, the addressed entry's department label and
undecided side; for the conversion claim, the approval gates) the caller
observed, so concurrent managers never overwrite each other's ledger entries
or assignments.
"""
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime
from pymongo.collection import Collection
from pymongo import DESCENDING, ReturnDocument

from .mongo_client import get_collection
from ..domain.models import ClientRequest, GeneratedWorkflow, ApprovalEntry
from ..domain.enums import RequestStatus, LedgerDecision, REVIEWABLE_STATUSES
from ..domain.errors import RequestNotFoundError, InvalidStateError, ConcurrencyError
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


def _status_values(statuses: Iterable[RequestStatus]) -> List[str]:
    return [s.value for s in statuses]


class RequestRepository:
    """Repository for client request operations"""

    def __init__(self):
        self._requests: Collection = get_collection("requests")

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_request(self, request: ClientRequest) -> ClientRequest:
        """Create a new client request"""
        doc = request.model_dump()
        doc["_id"] = request.request_id

        self._requests.insert_one(doc)
        logger.info(f"Created request: {request.request_id}", extra={"request_id": request.request_id})
        return request

    def get_request(self, request_id: str) -> Optional[ClientRequest]:
        """Get request by ID"""
        doc = self._requests.find_one({"request_id": request_id})
        if doc:
            doc.pop("_id", None)
            return ClientRequest.model_validate(doc)
        return None

    def get_request_or_raise(self, request_id: str) -> ClientRequest:
        """Get request by ID or raise error"""
        request = self.get_request(request_id)
        if not request:
            raise RequestNotFoundError(f"Request {request_id} not found")
        return request

    def list_requests(
        self,
        client: Optional[str] = None,
        statuses: Optional[List[RequestStatus]] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[ClientRequest]:
        """List requests, newest first"""
        query: Dict[str, Any] = {}
        if client:
            query["client"] = client
        if statuses:
            query["status"] = {"$in": _status_values(statuses)}

        cursor = self._requests.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)

        requests = []
        for doc in cursor:
            doc.pop("_id", None)
            requests.append(ClientRequest.model_validate(doc))
        return requests

    def count_requests(
        self,
        client: Optional[str] = None,
        statuses: Optional[List[RequestStatus]] = None
    ) -> int:
        query: Dict[str, Any] = {}
        if client:
            query["client"] = client
        if statuses:
            query["status"] = {"$in": _status_values(statuses)}
        return self._requests.count_documents(query)

    def delete_request(self, request_id: str, allowed_statuses: Iterable[RequestStatus]) -> None:
        """Delete a request if it is still in one of the allowed statuses"""
        result = self._requests.delete_one({
            "request_id": request_id,
            "status": {"$in": _status_values(allowed_statuses)}
        })
        if result.deleted_count == 0:
            self._raise_for_missed_update(request_id, allowed_statuses)
        logger.info(f"Deleted request: {request_id}", extra={"request_id": request_id})

    # =========================================================================
    # Conditional updates
    # =========================================================================

    def update_request(
        self,
        request_id: str,
        updates: Dict[str, Any],
        expected_statuses: Iterable[RequestStatus],
        extra_filter: Optional[Dict[str, Any]] = None
    ) -> ClientRequest:
        """
        Apply a $set to a request only while it is in one of the expected statuses.

        Raises:
            RequestNotFoundError: request does not exist
            InvalidStateError: request exists but is in another status
        """
        expected_statuses = list(expected_statuses)
        updates = dict(updates)
        updates["updated_at"] = utc_now()

        filter_query: Dict[str, Any] = {
            "request_id": request_id,
            "status": {"$in": _status_values(expected_statuses)}
        }
        if extra_filter:
            filter_query.update(extra_filter)

        result = self._requests.find_one_and_update(
            filter_query,
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            self._raise_for_missed_update(request_id, expected_statuses, bool(extra_filter))

        result.pop("_id", None)
        logger.info(f"Updated request: {request_id}", extra={"request_id": request_id})
        return ClientRequest.model_validate(result)

    def attach_workflow(
        self,
        request_id: str,
        workflow: GeneratedWorkflow,
        required_departments: List[str],
        ledger: List[ApprovalEntry]
    ) -> ClientRequest:
        """Store a generated workflow with its ledger; only once, from submitted"""
        return self.update_request(
            request_id,
            {
                "generated_workflow": workflow.model_dump(),
                "required_departments": list(required_departments),
                "approvals_by_department": [e.model_dump() for e in ledger],
                "task_assignments": {},
                "status": RequestStatus.WORKFLOW_GENERATED.value,
            },
            expected_statuses=[RequestStatus.SUBMITTED]
        )

    def update_workflow(
        self,
        request_id: str,
        task_updates: Dict[int, Dict[str, Any]],
        task_ids: Dict[int, str],
        top_level: Dict[str, Any],
        expected_statuses: Iterable[RequestStatus]
    ) -> ClientRequest:
        """
        Merge field updates onto individual workflow tasks.

        Args:
            task_updates: breakdown index -> {field: value}
            task_ids: breakdown index -> task id expected at that index
            top_level: other request fields to set alongside
        """
        updates: Dict[str, Any] = dict(top_level)
        guard: Dict[str, Any] = {"generated_workflow": {"$ne": None}}
        for index, fields in task_updates.items():
            prefix = f"generated_workflow.task_breakdown.{index}"
            guard[f"{prefix}.task_id"] = task_ids[index]
            for field, value in fields.items():
                updates[f"{prefix}.{field}"] = value

        return self.update_request(request_id, updates, expected_statuses, extra_filter=guard)

    def merge_assignments(
        self,
        request_id: str,
        assignments: Dict[str, List[str]],
        expected_statuses: Iterable[RequestStatus],
        new_status: RequestStatus
    ) -> ClientRequest:
        """Set the assignee list of each supplied task, leaving other tasks untouched"""
        updates: Dict[str, Any] = {
            f"task_assignments.{task_id}": list(refs)
            for task_id, refs in assignments.items()
        }
        updates["status"] = new_status.value
        return self.update_request(request_id, updates, expected_statuses)

    def record_ledger_decision(
        self,
        request_id: str,
        index: int,
        department: str,
        decision: LedgerDecision,
        actor_ref: str,
        at: datetime,
        expected_statuses: Iterable[RequestStatus]
    ) -> ClientRequest:
        """
        Flip one ledger entry to approved or rejected, clearing the opposite side.

        The entry is addressed by position and guarded by its stored department
        label and by still being undecided on that side, so a concurrent
        decision on another department is never lost and a concurrent identical
        decision fails instead of overwriting the first one.
        """
        prefix = f"approvals_by_department.{index}"
        if decision == LedgerDecision.APPROVE:
            entry_updates = {
                f"{prefix}.approved": True,
                f"{prefix}.approved_by": actor_ref,
                f"{prefix}.approved_at": at,
                f"{prefix}.rejected": False,
                f"{prefix}.rejected_by": None,
                f"{prefix}.rejected_at": None,
            }
        else:
            entry_updates = {
                f"{prefix}.rejected": True,
                f"{prefix}.rejected_by": actor_ref,
                f"{prefix}.rejected_at": at,
                f"{prefix}.approved": False,
                f"{prefix}.approved_by": None,
                f"{prefix}.approved_at": None,
            }

        decided_flag = "approved" if decision == LedgerDecision.APPROVE else "rejected"
        try:
            self.update_request(
                request_id,
                entry_updates,
                expected_statuses,
                extra_filter={
                    f"{prefix}.department": department,
                    f"{prefix}.{decided_flag}": False
                }
            )
        except ConcurrencyError:
            current = self.get_request_or_raise(request_id)
            ledger = current.approvals_by_department
            if index < len(ledger) and ledger[index].department == department \
                    and getattr(ledger[index], decided_flag):
                raise InvalidStateError(
                    f"Department {department} is already {decided_flag}",
                    details={"department": department, "reason": f"already_{decided_flag}"}
                )
            raise

        # First decision moves the request into review; a no-op afterwards
        self._requests.update_one(
            {"request_id": request_id, "status": RequestStatus.WORKFLOW_GENERATED.value},
            {"$set": {"status": RequestStatus.UNDER_REVIEW.value, "updated_at": utc_now()}}
        )
        return self.get_request_or_raise(request_id)

    # =========================================================================
    # Conversion claim
    # =========================================================================

    def claim_conversion(
        self,
        request_id: str,
        task_ids: List[str],
        attempt: str,
        stale_before: datetime
    ) -> Optional[ClientRequest]:
        """
        Move a request to approved and take the conversion for one attempt.

        The filter repeats the approval gates, so a department rejection or an
        unassignment that lands after the caller's read makes the claim miss.
        From approved the claim succeeds only when no attempt holds it or the
        holder went stale. Returns None when nothing matched.
        """
        now = utc_now()
        filter_query: Dict[str, Any] = {
            "request_id": request_id,
            "approvals_by_department.approved": {"$ne": False},
            "$or": [
                {"status": {"$in": _status_values(REVIEWABLE_STATUSES)}},
                {"status": RequestStatus.APPROVED.value, "conversion_attempt": None},
                {"status": RequestStatus.APPROVED.value, "conversion_claimed_at": {"$lt": stale_before}},
            ]
        }
        for task_id in task_ids:
            filter_query[f"task_assignments.{task_id}.0"] = {"$exists": True}

        result = self._requests.find_one_and_update(
            filter_query,
            {"$set": {
                "status": RequestStatus.APPROVED.value,
                "conversion_attempt": attempt,
                "conversion_claimed_at": now,
                "updated_at": now,
            }},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            return None
        result.pop("_id", None)
        logger.info(f"Conversion of {request_id} claimed by {attempt}", extra={"request_id": request_id})
        return ClientRequest.model_validate(result)

    def complete_conversion(self, request_id: str, attempt: str, project_id: int) -> Optional[ClientRequest]:
        """approved -> converted, only for the attempt still holding the claim"""
        result = self._requests.find_one_and_update(
            {
                "request_id": request_id,
                "status": RequestStatus.APPROVED.value,
                "conversion_attempt": attempt
            },
            {"$set": {
                "status": RequestStatus.CONVERTED.value,
                "converted_to_project": project_id,
                "conversion_attempt": None,
                "conversion_claimed_at": None,
                "updated_at": utc_now(),
            }},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            return None
        result.pop("_id", None)
        return ClientRequest.model_validate(result)

    def release_conversion(self, request_id: str, attempt: str) -> bool:
        """Drop a failed attempt's claim so the request can be retried at once"""
        result = self._requests.update_one(
            {
                "request_id": request_id,
                "status": RequestStatus.APPROVED.value,
                "conversion_attempt": attempt
            },
            {"$set": {"conversion_attempt": None, "conversion_claimed_at": None, "updated_at": utc_now()}}
        )
        return result.modified_count == 1

    # =========================================================================
    # Helpers
    # =========================================================================

    def _raise_for_missed_update(
        self,
        request_id: str,
        expected_statuses: Iterable[RequestStatus],
        guarded: bool = False
    ) -> None:
        """Explain why a conditional update matched nothing"""
        current = self.get_request(request_id)
        if current is None:
            raise RequestNotFoundError(f"Request {request_id} not found")

        allowed = _status_values(expected_statuses)
        if current.status.value not in allowed:
            raise InvalidStateError(
                f"Request {request_id} is {current.status.value}; "
                f"this action requires status {', '.join(allowed)}",
                details={"status": current.status.value, "allowed_statuses": allowed}
            )
        if guarded:
            raise ConcurrencyError(
                f"Request {request_id} was modified. Please refresh and try again.",
                details={"request_id": request_id}
            )
        raise InvalidStateError(
            f"Request {request_id} could not be updated",
            details={"status": current.status.value}
        )
