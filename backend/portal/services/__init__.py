"""Service modules - Business logic layer"""
from .directory_service import DirectoryService
from .employee_suggestion import EmployeeSuggestionService
from .genai_service import GenAIService
from .workflow_generator import WorkflowGenerator

__all__ = [
    "DirectoryService",
    "EmployeeSuggestionService",
    "GenAIService",
    "WorkflowGenerator",
]
