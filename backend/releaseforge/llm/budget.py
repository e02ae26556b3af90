"""
ReleaseForge — Explicit call budget for the text-generation service.

A CallBudget is created per remediation run and threaded through every
strategy, so separate runs never share counters and tests can assert
exact call counts.
"""

from __future__ import annotations

from releaseforge.errors import BudgetExhaustedError
from releaseforge.llm.text import TextGenerator


class CallBudget:
    def __init__(self, limit: int):
        if limit < 0:
            raise ValueError("limit must be >= 0")
        self.limit = limit
        self.used = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    def consume(self) -> None:
        if self.exhausted:
            raise BudgetExhaustedError(self.limit)
        self.used += 1


class BudgetedTextGenerator:
    """TextGenerator wrapper that charges every call against a CallBudget."""

    def __init__(self, inner: TextGenerator, budget: CallBudget, max_tokens: int = 4000):
        self.inner = inner
        self.budget = budget
        self.max_tokens = max_tokens

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        self.budget.consume()
        # remediation calls share one per-call token ceiling
        return await self.inner.generate(prompt, system=system, max_tokens=self.max_tokens)
