"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific departmental or ownership authority is missing"""
    error_code = "PERMISSION_DENIED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class AmbiguousRequestError(DomainError):
    """An omitted parameter has more than one valid resolution"""
    error_code = "AMBIGUOUS_REQUEST"
    http_status = 400


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class RequestNotFoundError(NotFoundError):
    """Client request not found"""
    error_code = "REQUEST_NOT_FOUND"


class ProjectNotFoundError(NotFoundError):
    """Project not found"""
    error_code = "PROJECT_NOT_FOUND"


class TaskNotFoundError(NotFoundError):
    """Project task not found"""
    error_code = "TASK_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict"""
    error_code = "CONCURRENCY_CONFLICT"


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


# Engine Errors
class EngineError(DomainError):
    """Lifecycle engine error"""
    error_code = "ENGINE_ERROR"
    http_status = 500


class ConversionError(EngineError):
    """Request to project conversion failed partway; needs operator attention"""
    error_code = "CONVERSION_FAILED"


# External Service Errors
class ExternalServiceError(DomainError):
    """External service failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class WorkflowGenerationError(ExternalServiceError):
    """Workflow generator returned an unusable task breakdown"""
    error_code = "WORKFLOW_GENERATION_ERROR"


class OpenAIError(ExternalServiceError):
    """Azure OpenAI API error"""
    error_code = "OPENAI_ERROR"
