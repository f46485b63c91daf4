import datetime as dt

import pytest

from statement_importer.services.cost import AICostTracker, calculate_cost, model_rates


class Clock:
    def __init__(self, now: dt.datetime):
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(dt.datetime(2024, 1, 31, 10, 0))


def test_calculate_cost() -> None:
    assert calculate_cost(1000, 1000, "gpt-4o-mini") == pytest.approx(0.00075)
    assert calculate_cost(1000, 0, "unknown-model") == pytest.approx(0.001)
    assert calculate_cost(5000, 5000, "on-device") == 0.0


@pytest.mark.parametrize(
    "snapshot,base",
    [
        ("gpt-4o-mini-2024-07-18", "gpt-4o-mini"),
        ("gpt-4o-2024-08-06", "gpt-4o"),
        ("gpt-4-turbo-2024-04-09", "gpt-4-turbo"),
    ],
)
def test_dated_snapshots_use_base_model_price(snapshot: str, base: str) -> None:
    assert model_rates(snapshot) == model_rates(base)
    assert calculate_cost(1000, 1000, snapshot) == pytest.approx(calculate_cost(1000, 1000, base))


def test_snapshot_usage_is_charged_at_base_price(clock: Clock) -> None:
    tracker = AICostTracker(daily_budget=0.10, monthly_budget=2.0, clock=clock)
    tracker.record(10_000, 10_000, "gpt-4o-mini-2024-07-18")
    assert tracker.get_usage_stats().today_cost == pytest.approx(0.0075)


def test_budget_is_enforced(clock: Clock) -> None:
    tracker = AICostTracker(daily_budget=0.01, monthly_budget=1.0, clock=clock)
    assert tracker.can_execute(0.005)

    tracker.record(10_000, 10_000, "gpt-4o-mini")  # 0.0075
    assert tracker.can_execute(0.002)
    assert not tracker.can_execute(0.003)


def test_daily_and_monthly_rollover(clock: Clock) -> None:
    tracker = AICostTracker(daily_budget=0.01, monthly_budget=0.012, clock=clock)
    tracker.record(10_000, 10_000, "gpt-4o-mini")

    clock.now = dt.datetime(2024, 1, 31, 23, 0)
    assert tracker.get_usage_stats().today_cost == pytest.approx(0.0075)

    clock.now = dt.datetime(2024, 1, 31, 23, 59) + dt.timedelta(minutes=1)
    stats = tracker.get_usage_stats()
    assert stats.today_cost == 0.0
    # February starts a new month as well
    assert stats.month_cost == 0.0
    assert stats.month_remaining == pytest.approx(0.012)


def test_monthly_budget_spans_days(clock: Clock) -> None:
    clock.now = dt.datetime(2024, 1, 10)
    tracker = AICostTracker(daily_budget=0.01, monthly_budget=0.01, clock=clock)
    tracker.record(10_000, 10_000, "gpt-4o-mini")

    clock.now = dt.datetime(2024, 1, 11)
    assert tracker.get_usage_stats().today_cost == 0.0
    assert not tracker.can_execute(0.005)


def test_usage_history(clock: Clock) -> None:
    tracker = AICostTracker(daily_budget=1.0, monthly_budget=10.0, clock=clock)
    tracker.record(100, 10, "gpt-4o")

    stats = tracker.get_usage_stats()
    assert len(stats.recent_records) == 1
    assert stats.recent_records[0].model == "gpt-4o"

    clock.now = clock.now + dt.timedelta(days=40)
    assert tracker.get_history(days=30) == []


def test_budgets_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AI_DAILY_BUDGET", "0.5")
    monkeypatch.setenv("AI_MONTHLY_BUDGET", "not-a-number")
    tracker = AICostTracker()
    assert tracker.daily_budget == 0.5
    assert tracker.monthly_budget == 2.0
