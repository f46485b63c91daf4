import datetime as dt
from collections import deque
from collections.abc import Callable
from typing import Protocol

from pydantic import BaseModel

from statement_importer.core import settings
from statement_importer.logger import get_logger

logger = get_logger(__name__)

# USD per 1K tokens: (input, output)
MODEL_COSTS: dict[str, tuple[float, float]] = {
    "gpt-4o-mini": (0.00015, 0.0006),
    "gpt-4o": (0.005, 0.015),
    "gpt-4-turbo": (0.01, 0.03),
    "claude-3-5-haiku-latest": (0.0008, 0.004),
    "claude-3-5-haiku-20241022": (0.0008, 0.004),
    "claude-3-5-sonnet-20241022": (0.003, 0.015),
    "claude-sonnet-4-20250514": (0.003, 0.015),
    "claude-opus-4-20250514": (0.015, 0.075),
    "on-device": (0.0, 0.0),
}
DEFAULT_COST = (0.001, 0.005)

HISTORY_LIMIT = 1000


def model_rates(model: str) -> tuple[float, float]:
    """Per-1K token rates; dated snapshots such as ``gpt-4o-mini-2024-07-18`` use their base model's price."""
    if model in MODEL_COSTS:
        return MODEL_COSTS[model]
    prefixes = [known for known in MODEL_COSTS if model.startswith(f"{known}-")]
    if prefixes:
        return MODEL_COSTS[max(prefixes, key=len)]
    return DEFAULT_COST


def calculate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    input_rate, output_rate = model_rates(model)
    return input_tokens / 1000 * input_rate + output_tokens / 1000 * output_rate


class CostTracker(Protocol):
    def can_execute(self, estimated_cost: float) -> bool: ...

    def record(self, input_tokens: int, output_tokens: int, model: str) -> None: ...


class UsageRecord(BaseModel):
    timestamp: dt.datetime
    model: str
    input_tokens: int
    output_tokens: int
    cost: float


class UsageStats(BaseModel):
    today_cost: float
    month_cost: float
    daily_budget: float
    monthly_budget: float
    today_remaining: float
    month_remaining: float
    recent_records: list[UsageRecord]


class AICostTracker:
    """
    Keeps remote model spend within a daily and a monthly budget.

    The check in ``can_execute`` and the charge in ``record`` are separate
    steps, so concurrent callers may overshoot by one request each.
    """

    def __init__(
        self,
        daily_budget: float | None = None,
        monthly_budget: float | None = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ):
        if daily_budget is None:
            daily_budget = settings.get_env_float("AI_DAILY_BUDGET", settings.DEFAULT_DAILY_BUDGET)
        if monthly_budget is None:
            monthly_budget = settings.get_env_float("AI_MONTHLY_BUDGET", settings.DEFAULT_MONTHLY_BUDGET)
        self.daily_budget = daily_budget
        self.monthly_budget = monthly_budget
        self._clock = clock
        self._today_cost = 0.0
        self._month_cost = 0.0
        self._day: dt.date | None = None
        self._month: tuple[int, int] | None = None
        self._history: deque[UsageRecord] = deque(maxlen=HISTORY_LIMIT)

    def _roll_over(self) -> None:
        today = self._clock().date()
        if self._day != today:
            if self._day is not None:
                logger.info(f"[COST] Daily reset, previous day cost ${self._today_cost:.5f}")
            self._today_cost = 0.0
            self._day = today
        month = (today.year, today.month)
        if self._month != month:
            if self._month is not None:
                logger.info(f"[COST] Monthly reset, previous month cost ${self._month_cost:.5f}")
            self._month_cost = 0.0
            self._month = month

    def can_execute(self, estimated_cost: float) -> bool:
        self._roll_over()
        allowed = (
            self._today_cost + estimated_cost <= self.daily_budget
            and self._month_cost + estimated_cost <= self.monthly_budget
        )
        if not allowed:
            logger.warning(
                f"[COST] Denied: estimated=${estimated_cost:.5f}, "
                f"today=${self._today_cost:.5f}/{self.daily_budget}, "
                f"month=${self._month_cost:.5f}/{self.monthly_budget}"
            )
        return allowed

    def record(self, input_tokens: int, output_tokens: int, model: str) -> None:
        self._roll_over()
        cost = calculate_cost(input_tokens, output_tokens, model)
        self._today_cost += cost
        self._month_cost += cost
        self._history.append(
            UsageRecord(
                timestamp=self._clock(),
                model=model,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=cost,
            )
        )
        logger.info(
            f"[COST] model={model} tokens={input_tokens}+{output_tokens} "
            f"cost=${cost:.5f} today=${self._today_cost:.5f}"
        )

    def get_usage_stats(self) -> UsageStats:
        self._roll_over()
        return UsageStats(
            today_cost=self._today_cost,
            month_cost=self._month_cost,
            daily_budget=self.daily_budget,
            monthly_budget=self.monthly_budget,
            today_remaining=max(0.0, self.daily_budget - self._today_cost),
            month_remaining=max(0.0, self.monthly_budget - self._month_cost),
            recent_records=list(self._history)[-10:],
        )

    def get_history(self, days: int = 30) -> list[UsageRecord]:
        cutoff = self._clock() - dt.timedelta(days=days)
        return [record for record in self._history if record.timestamp >= cutoff]
