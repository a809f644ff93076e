"""LLM task execution: Gemini client, cost estimation, timeouts."""

from .client import GeminiTaskExecutor, TaskExecutor, TaskResult
from .timeouts import with_timeout

__all__ = ["GeminiTaskExecutor", "TaskExecutor", "TaskResult", "with_timeout"]
