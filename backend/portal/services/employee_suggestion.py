"""Employee Suggestion Service - Rank staffing candidates for workflow tasks"""
from typing import List, Optional, Tuple

from ..config.settings import settings
from ..domain import departments
from ..domain.enums import Availability
from ..domain.models import Employee, SuggestedEmployee, WorkflowTask
from ..repositories.directory_repo import DirectoryRepository
from ..utils.logger import get_logger

logger = get_logger(__name__)

SKILL_WEIGHT = 0.6
AVAILABLE_POINTS = 30
BUSY_POINTS = 10
DEPARTMENT_POINTS = 10


def _skill_matches(required: str, skills: List[str]) -> bool:
    required = required.lower()
    return any(required in s.lower() or s.lower() in required for s in skills if s)


def calculate_match_score(employee: Employee, task: WorkflowTask) -> Tuple[int, str]:
    """
    Score an employee for a task on a 0-100 scale.

    60% of the weight goes to required-skill coverage, availability adds
    30 (Available) or 10 (Busy), and an employee from the task's team
    gets a 10 point bonus.
    """
    score = 0.0
    reasons: List[str] = []

    required_skills = [s for s in task.required_skills if s]
    if required_skills:
        matching = [s for s in required_skills if _skill_matches(s, employee.skills)]
        score += len(matching) / len(required_skills) * 100 * SKILL_WEIGHT
        if matching:
            reasons.append(
                f"Has {len(matching)}/{len(required_skills)} required skills: {', '.join(matching)}"
            )

    if employee.availability == Availability.AVAILABLE:
        score += AVAILABLE_POINTS
        reasons.append("Currently available")
    elif employee.availability == Availability.BUSY:
        score += BUSY_POINTS
        reasons.append("Busy but can be assigned")
    else:
        reasons.append("On leave")

    if task.team and employee.department and departments.matches(task.team, employee.department):
        score += DEPARTMENT_POINTS
        reasons.append(f"From {employee.department} department")

    return min(round(score), 100), ", ".join(reasons)


class EmployeeSuggestionService:
    """Suggest employees for workflow tasks from the active directory"""

    def __init__(self, limit: Optional[int] = None):
        self.directory_repo = DirectoryRepository()
        self.limit = limit or settings.suggestion_limit

    def suggest_for_task(
        self,
        task: WorkflowTask,
        employees: Optional[List[Employee]] = None
    ) -> List[SuggestedEmployee]:
        """Top-ranked candidates for one task, highest score first"""
        if employees is None:
            employees = self.directory_repo.list_employees(active_only=True)

        ranked = []
        for employee in employees:
            score, reason = calculate_match_score(employee, task)
            ranked.append(SuggestedEmployee(
                employee_ref=employee.employee_ref,
                match_score=score,
                reason=reason
            ))

        # sorted() is stable, so ties keep directory order
        ranked = sorted(ranked, key=lambda s: s.match_score, reverse=True)
        return ranked[:self.limit]

    def suggest_for_tasks(self, tasks: List[WorkflowTask]) -> List[List[SuggestedEmployee]]:
        """Suggestions for several tasks with a single directory read"""
        employees = self.directory_repo.list_employees(active_only=True)
        logger.info(f"Ranking {len(employees)} employee(s) for {len(tasks)} task(s)")
        return [self.suggest_for_task(task, employees) for task in tasks]
