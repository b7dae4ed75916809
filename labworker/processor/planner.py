from dataclasses import dataclass
from enum import Enum

from labworker.processor.exceptions import PageCountError


class ExecutionStrategy(str, Enum):
    SINGLE_SHOT = "single_shot"
    CHUNKED = "chunked"


@dataclass(frozen=True)
class ExecutionPlan:
    strategy: ExecutionStrategy
    page_count: int


class PagePlanner:
    """Chooses between one whole-document pass and per-page processing."""

    def __init__(self, chunk_threshold: int = 4) -> None:
        if chunk_threshold < 1:
            raise ValueError("chunk_threshold must be at least 1")
        self._chunk_threshold = chunk_threshold

    def plan(self, page_count: int) -> ExecutionPlan:
        """Return the execution plan for a document with page_count pages.

        Raises:
            PageCountError: if page_count is less than 1.
        """
        if page_count < 1:
            raise PageCountError(f"Document has no pages (page_count={page_count})")
        if page_count < self._chunk_threshold:
            return ExecutionPlan(ExecutionStrategy.SINGLE_SHOT, page_count)
        return ExecutionPlan(ExecutionStrategy.CHUNKED, page_count)
