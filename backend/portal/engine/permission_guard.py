"""Permission Guard - Authorization enforcement for lifecycle actions"""
from typing import Iterable, List

from ..domain import departments
from ..domain.models import ActorContext, ClientRequest
from ..domain.errors import PermissionDeniedError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionGuard:
    """
    Permission enforcement for request and project operations

    Rules:
    - Clients act only on their own requests
    - Employees can view everything and generate workflows
    - Managers edit, staff, sign off on, approve and reject requests
    - Departmental authority is an alias match against approves_departments
    """

    # =========================================================================
    # Role checks
    # =========================================================================

    def require_client(self, actor: ActorContext) -> None:
        if not actor.is_client:
            raise PermissionDeniedError("Only clients can perform this action")

    def require_employee(self, actor: ActorContext) -> None:
        if not actor.is_employee:
            raise PermissionDeniedError("Only employees can perform this action")

    def require_manager(self, actor: ActorContext) -> None:
        if not actor.is_manager:
            raise PermissionDeniedError(
                "Only managers can perform this action",
                details={"role": actor.role}
            )

    # =========================================================================
    # Ownership
    # =========================================================================

    def is_request_owner(self, actor: ActorContext, request: ClientRequest) -> bool:
        return actor.is_client and actor.user_id == request.client

    def can_view_request(self, actor: ActorContext, request: ClientRequest) -> bool:
        """Employees see every request, clients only their own"""
        return actor.is_employee or self.is_request_owner(actor, request)

    def require_request_owner(self, actor: ActorContext, request: ClientRequest) -> None:
        if not self.is_request_owner(actor, request):
            raise PermissionDeniedError(
                "Only the submitting client can modify this request",
                details={"request_id": request.request_id}
            )

    # =========================================================================
    # Departmental authority
    # =========================================================================

    def has_department_authority(self, actor: ActorContext, department: str) -> bool:
        return departments.matches_any(department, actor.approves_departments)

    def disallowed_teams(self, actor: ActorContext, teams: Iterable[str]) -> List[str]:
        """Teams (in first-seen order) the actor has no authority over"""
        disallowed: List[str] = []
        for team in teams:
            if team not in disallowed and not self.has_department_authority(actor, team):
                disallowed.append(team)
        return disallowed

    def shares_department(self, actor: ActorContext, labels: Iterable[str]) -> bool:
        """True when the actor's departments intersect the given labels"""
        return bool(departments.expand_all(actor.approves_departments) & departments.expand_all(labels))

    def require_department_overlap(
        self,
        actor: ActorContext,
        labels: Iterable[str],
        action: str
    ) -> None:
        labels = list(labels)
        if not self.shares_department(actor, labels):
            logger.warning(
                f"Department authority missing for {action}",
                extra={"actor_id": actor.user_id, "action": action}
            )
            raise PermissionDeniedError(
                f"You do not manage any department required to {action}",
                details={
                    "required_departments": labels,
                    "approves_departments": list(actor.approves_departments)
                }
            )
