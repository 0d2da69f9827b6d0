"""Workflow Generator - Task breakdown with staffing suggestions

Produces the GeneratedWorkflow attached to a request. Breakdowns come from
Azure OpenAI when it is configured and from fixed per-type templates
otherwise; either way every task gets ranked employee suggestions.
"""
from typing import Any, Dict, List, Optional

from ..domain.enums import RequestType
from ..domain.errors import WorkflowGenerationError
from ..domain.models import GeneratedWorkflow, WorkflowTask, SuggestedEmployee
from ..utils.idgen import generate_workflow_task_id
from ..utils.logger import get_logger
from .employee_suggestion import EmployeeSuggestionService
from .genai_service import GenAIService

logger = get_logger(__name__)


TEMPLATES: Dict[RequestType, Dict[str, Any]] = {
    RequestType.WEB_DEV: {
        "estimated_duration": 320,
        "task_breakdown": [
            {"task_name": "Requirements Analysis & Planning", "team": "research", "estimated_hours": 40,
             "required_skills": ["Business Analysis", "User Research", "Documentation"]},
            {"task_name": "UI/UX Design", "team": "design", "estimated_hours": 60,
             "required_skills": ["Figma", "UI/UX", "Web Design", "Wireframing"]},
            {"task_name": "Frontend Development", "team": "development", "estimated_hours": 120,
             "required_skills": ["React", "JavaScript", "HTML", "CSS", "TypeScript"]},
            {"task_name": "Backend Development", "team": "development", "estimated_hours": 80,
             "required_skills": ["Node.js", "Express", "MongoDB", "REST API"]},
            {"task_name": "Testing & QA", "team": "testing", "estimated_hours": 20,
             "required_skills": ["Testing", "QA", "Jest", "Debugging"]},
        ],
    },
    RequestType.APP_DEV: {
        "estimated_duration": 400,
        "task_breakdown": [
            {"task_name": "Requirements Analysis & Planning", "team": "research", "estimated_hours": 50,
             "required_skills": ["Business Analysis", "User Research", "Mobile Strategy"]},
            {"task_name": "UI/UX Design", "team": "design", "estimated_hours": 80,
             "required_skills": ["Figma", "UI/UX", "Mobile Design", "Prototyping"]},
            {"task_name": "Mobile App Development", "team": "development", "estimated_hours": 180,
             "required_skills": ["React Native", "Mobile Development", "JavaScript", "TypeScript"]},
            {"task_name": "Backend API Development", "team": "development", "estimated_hours": 70,
             "required_skills": ["Node.js", "Express", "MongoDB", "REST API"]},
            {"task_name": "Testing & QA", "team": "testing", "estimated_hours": 20,
             "required_skills": ["Mobile Testing", "QA", "Debugging"]},
        ],
    },
    RequestType.PROTOTYPE: {
        "estimated_duration": 120,
        "task_breakdown": [
            {"task_name": "Requirement Gathering", "team": "research", "estimated_hours": 20,
             "required_skills": ["User Research", "Requirements Analysis"]},
            {"task_name": "Prototype Design", "team": "design", "estimated_hours": 60,
             "required_skills": ["Figma", "Prototyping", "UI/UX", "Wireframing"]},
            {"task_name": "Interactive Prototype Development", "team": "development", "estimated_hours": 40,
             "required_skills": ["JavaScript", "Prototyping", "Frontend"]},
        ],
    },
    RequestType.RESEARCH: {
        "estimated_duration": 80,
        "task_breakdown": [
            {"task_name": "Research & Analysis", "team": "research", "estimated_hours": 80,
             "required_skills": ["Research", "Analysis", "Documentation"]},
        ],
    },
}


class WorkflowGenerator:
    """Generate workflows and refresh staffing suggestions"""

    def __init__(self):
        self.genai = GenAIService()
        self.suggestions = EmployeeSuggestionService()

    def generate_workflow_with_suggestions(
        self,
        request_type: RequestType,
        description: Optional[str],
        requirements: List[str]
    ) -> GeneratedWorkflow:
        """
        Build a task breakdown for a request and attach suggestions

        Raises:
            WorkflowGenerationError: breakdown empty or a task has no team
            OpenAIError: Azure OpenAI configured but failed
        """
        if self.genai.is_configured:
            raw = self.genai.draft_task_breakdown(request_type, description, requirements)
            source = "azure_openai"
        else:
            raw = TEMPLATES.get(request_type)
            source = "template"
            if raw is None:
                raise WorkflowGenerationError(
                    f"No workflow template for request type {request_type.value}"
                )

        workflow = self._build_workflow(raw)
        suggestions = self.suggestions.suggest_for_tasks(workflow.task_breakdown)
        for task, suggested in zip(workflow.task_breakdown, suggestions):
            task.suggested_employees = suggested

        logger.info(
            f"Generated {len(workflow.task_breakdown)} task(s) from {source}",
            extra={"action": "generate_workflow"}
        )
        return workflow

    def suggest_employees_for_task(self, task: WorkflowTask) -> List[SuggestedEmployee]:
        return self.suggestions.suggest_for_task(task)

    def _build_workflow(self, raw: Dict[str, Any]) -> GeneratedWorkflow:
        items = raw.get("task_breakdown") or []
        if not items:
            raise WorkflowGenerationError("Workflow generator returned no tasks")

        tasks: List[WorkflowTask] = []
        for position, item in enumerate(items):
            team = str(item.get("team") or "").strip()
            name = str(item.get("task_name") or "").strip()
            if not team:
                raise WorkflowGenerationError(
                    f"Generated task {position + 1} has no team",
                    details={"task_index": position}
                )
            tasks.append(WorkflowTask(
                task_id=generate_workflow_task_id(),
                task_name=name or f"Task {position + 1}",
                team=team,
                estimated_hours=item.get("estimated_hours"),
                required_skills=[str(s) for s in item.get("required_skills") or []],
            ))

        duration = raw.get("estimated_duration")
        if duration is None:
            duration = sum(t.estimated_hours or 0 for t in tasks)
        return GeneratedWorkflow(estimated_duration=duration, task_breakdown=tasks)
