"""Directory Repository - Data access for employees and clients"""
from typing import Any, Dict, Iterable, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.models import Employee, Client
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DirectoryRepository:
    """Repository for the employee and client directories"""

    def __init__(self):
        self._employees: Collection = get_collection("employees")
        self._clients: Collection = get_collection("clients")

    # =========================================================================
    # Employees
    # =========================================================================

    def upsert_employee(self, employee: Employee) -> Employee:
        doc = employee.model_dump()
        self._employees.update_one(
            {"employee_ref": employee.employee_ref},
            {"$set": doc},
            upsert=True
        )
        logger.info(f"Upserted employee: {employee.employee_ref}")
        return employee

    def get_employee(self, employee_ref: str) -> Optional[Employee]:
        """Get employee by internal reference"""
        doc = self._employees.find_one({"employee_ref": employee_ref})
        if doc:
            doc.pop("_id", None)
            return Employee.model_validate(doc)
        return None

    def get_employees_by_refs(self, employee_refs: Iterable[str]) -> Dict[str, Employee]:
        """Bulk lookup by internal reference; unknown refs are simply absent"""
        refs = list(set(employee_refs))
        if not refs:
            return {}
        result: Dict[str, Employee] = {}
        for doc in self._employees.find({"employee_ref": {"$in": refs}}):
            doc.pop("_id", None)
            employee = Employee.model_validate(doc)
            result[employee.employee_ref] = employee
        return result

    def get_employees_by_ids(self, employee_ids: Iterable[int]) -> Dict[int, Employee]:
        """Bulk lookup by external numeric id; unknown ids are simply absent"""
        ids = list(set(employee_ids))
        if not ids:
            return {}
        result: Dict[int, Employee] = {}
        for doc in self._employees.find({"employee_id": {"$in": ids}}):
            doc.pop("_id", None)
            employee = Employee.model_validate(doc)
            result[employee.employee_id] = employee
        return result

    def list_employees(self, active_only: bool = True) -> List[Employee]:
        query: Dict[str, Any] = {}
        if active_only:
            query["active"] = True
        employees = []
        for doc in self._employees.find(query).sort("employee_id", ASCENDING):
            doc.pop("_id", None)
            employees.append(Employee.model_validate(doc))
        return employees

    def set_employee_departments(
        self,
        employee_ref: str,
        department: str,
        approves_departments: List[str]
    ) -> None:
        self._employees.update_one(
            {"employee_ref": employee_ref},
            {"$set": {"department": department, "approves_departments": approves_departments}}
        )

    # =========================================================================
    # Clients
    # =========================================================================

    def upsert_client(self, client: Client) -> Client:
        doc = client.model_dump()
        self._clients.update_one(
            {"client_ref": client.client_ref},
            {"$set": doc},
            upsert=True
        )
        logger.info(f"Upserted client: {client.client_ref}")
        return client

    def get_client(self, client_ref: str) -> Optional[Client]:
        """Get client by internal reference"""
        doc = self._clients.find_one({"client_ref": client_ref})
        if doc:
            doc.pop("_id", None)
            return Client.model_validate(doc)
        return None
