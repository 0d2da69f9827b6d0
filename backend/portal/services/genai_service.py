"""GenAI Service - Azure OpenAI drafting of request task breakdowns"""
import json
import time
from typing import Any, Dict, List, Optional
from openai import AzureOpenAI

from ..config.settings import settings
from ..domain.enums import RequestType
from ..domain.errors import OpenAIError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You plan delivery work for a software agency. Given a client
request, return ONLY a JSON object of this shape:

{
  "estimated_duration": <total hours, number>,
  "task_breakdown": [
    {
      "task_name": "<short imperative name>",
      "team": "<one of: research, design, development, testing>",
      "estimated_hours": <number>,
      "required_skills": ["<skill>", "..."]
    }
  ]
}

Rules:
- Order tasks in delivery order; tasks are staffed two per sprint.
- Every task MUST have a team.
- Keep between 1 and 8 tasks.
"""


class GenAIService:
    """Service for AI-assisted task breakdowns"""

    def __init__(self):
        self.client: Optional[AzureOpenAI] = None
        if settings.genai_enabled:
            self.client = AzureOpenAI(
                azure_endpoint=settings.azure_openai_endpoint,
                api_key=settings.azure_openai_api_key,
                api_version=settings.azure_openai_api_version
            )

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def draft_task_breakdown(
        self,
        request_type: RequestType,
        description: Optional[str],
        requirements: List[str]
    ) -> Dict[str, Any]:
        """
        Draft a task breakdown for a client request

        Returns the raw breakdown dict (estimated_duration, task_breakdown).
        Includes retry logic for transient failures.

        Raises:
            OpenAIError: service not configured or every attempt failed
        """
        if not self.client:
            raise OpenAIError("Azure OpenAI is not configured")

        user_message = f"Request type: {request_type.value}\n"
        if description:
            user_message += f"Description: {description}\n"
        if requirements:
            user_message += "Requirements:\n" + "\n".join(f"- {r}" for r in requirements)

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_message},
        ]

        max_retries = 2
        retry_delay_seconds = 2
        last_error: Optional[Exception] = None

        for attempt in range(max_retries + 1):
            try:
                if attempt > 0:
                    logger.info(f"AI breakdown retry attempt {attempt}/{max_retries}")
                    time.sleep(retry_delay_seconds)

                response = self.client.chat.completions.create(
                    model=settings.azure_openai_deployment,
                    messages=messages,
                    temperature=0.3,
                    max_tokens=2000,
                    response_format={"type": "json_object"}
                )

                if not response.choices:
                    raise ValueError("AI returned no response choices")

                content = response.choices[0].message.content
                if not content or not content.strip():
                    raise ValueError("AI returned empty response")

                draft = json.loads(content)
                if not draft.get("task_breakdown"):
                    raise ValueError("AI returned a breakdown without tasks")

                logger.info(
                    f"AI breakdown generated on attempt {attempt + 1}, "
                    f"tasks: {len(draft['task_breakdown'])}"
                )
                return draft

            except json.JSONDecodeError as e:
                last_error = e
                logger.warning(f"AI breakdown attempt {attempt + 1} failed - JSON parse error: {e}")

            except ValueError as e:
                last_error = e
                logger.warning(f"AI breakdown attempt {attempt + 1} failed - validation error: {e}")

            except Exception as e:
                last_error = e
                error_str = str(e).lower()
                is_retryable = any(keyword in error_str for keyword in [
                    "timeout", "rate limit", "429", "503", "504", "502",
                    "connection", "temporary", "overloaded", "capacity"
                ])
                if is_retryable and attempt < max_retries:
                    logger.warning(f"AI breakdown attempt {attempt + 1} failed with retryable error: {e}")
                    continue
                logger.error(f"AI breakdown failed permanently: {e}")
                raise OpenAIError(f"Failed to generate task breakdown: {str(e)}")

        logger.error(f"AI breakdown failed after {max_retries + 1} attempts. Last error: {last_error}")
        raise OpenAIError(f"Failed to generate task breakdown after {max_retries + 1} attempts")
