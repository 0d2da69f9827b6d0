"""Directory Service - Actor resolution and directory lookups"""
from typing import Any, Dict, List

from ..domain.enums import ActorKind
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext, Employee
from ..repositories.directory_repo import DirectoryRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DirectoryService:
    """Service for directory operations backed by the employees and clients collections"""

    def __init__(self):
        self.directory_repo = DirectoryRepository()

    def resolve_actor(self, claims: Dict[str, Any]) -> ActorContext:
        """
        Build the actor context for validated token claims

        Raises:
            AuthenticationError: the referenced user does not exist or is inactive
        """
        user_id = claims.get("sub", "")
        kind = ActorKind(claims.get("kind"))

        if kind == ActorKind.CLIENT:
            client = self.directory_repo.get_client(user_id)
            if client is None or not client.active:
                logger.warning(f"Token references unknown or inactive client {user_id}")
                raise AuthenticationError("Client account not found or inactive")
            return ActorContext(
                user_id=client.client_ref,
                kind=ActorKind.CLIENT,
                email=client.contact_email,
                display_name=client.client_name
            )

        employee = self.directory_repo.get_employee(user_id)
        if employee is None or not employee.active:
            logger.warning(f"Token references unknown or inactive employee {user_id}")
            raise AuthenticationError("Employee account not found or inactive")
        return ActorContext(
            user_id=employee.employee_ref,
            kind=ActorKind.EMPLOYEE,
            email=employee.email,
            display_name=employee.name,
            role=employee.role,
            employee_id=employee.employee_id,
            approves_departments=list(employee.approves_departments)
        )

    def get_employees_summary(self, employee_refs: List[str]) -> List[Dict[str, Any]]:
        """Display data for employee references, skipping unknown ones"""
        employees = self.directory_repo.get_employees_by_refs(employee_refs)
        summary = []
        for ref in employee_refs:
            employee = employees.get(ref)
            if employee is None:
                continue
            summary.append(self._summarize(employee))
        return summary

    def _summarize(self, employee: Employee) -> Dict[str, Any]:
        return {
            "employee_ref": employee.employee_ref,
            "employee_id": employee.employee_id,
            "name": employee.name,
            "email": employee.email,
            "department": employee.department,
            "availability": employee.availability.value,
        }
