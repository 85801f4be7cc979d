"""
Tests for OpenAIClient: JSON mode and the per-request deadline.

The OpenAI transport is replaced by a stub; time is a fake clock.
"""

from types import SimpleNamespace

import pytest

from config import Settings
from errors import AiProviderError
from llm.client import OpenAIClient


class FakeClock:
    def __init__(self):
        self.now = 1000.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubCompletions:
    """Plays scripted outcomes; each takes `cost` seconds on the fake clock."""

    def __init__(self, clock: FakeClock, outcomes: list, cost: float = 0.0):
        self.clock = clock
        self.outcomes = list(outcomes)
        self.cost = cost
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        self.clock.now += self.cost
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr("llm.client.time", fake)
    return fake


def make_client(clock, outcomes, cost=0.0, **overrides) -> tuple[OpenAIClient, StubCompletions]:
    config = Settings(
        openai_api_key="test-key",
        llm_max_retries=overrides.pop("llm_max_retries", 2),
        llm_timeout_seconds=overrides.pop("llm_timeout_seconds", 60),
        llm_total_timeout_seconds=overrides.pop("llm_total_timeout_seconds", 90),
        **overrides,
    )
    client = OpenAIClient(config)
    stub = StubCompletions(clock, outcomes, cost)
    client.client = SimpleNamespace(chat=SimpleNamespace(completions=stub))
    return client, stub


MESSAGES = [{"role": "user", "content": "Balas dalam JSON"}]


class TestJsonMode:

    def test_requests_json_object(self, clock):
        client, stub = make_client(clock, ['{"a": 1}'])

        assert client.complete(MESSAGES) == '{"a": 1}'
        assert stub.calls[0]["response_format"] == {"type": "json_object"}

    def test_can_be_disabled(self, clock):
        client, stub = make_client(clock, ['{"a": 1}'], llm_json_mode=False)

        client.complete(MESSAGES)

        assert "response_format" not in stub.calls[0]


class TestRetries:

    def test_retries_then_succeeds(self, clock):
        client, stub = make_client(clock, [ConnectionError("reset"), '{"a": 1}'])

        assert client.complete(MESSAGES) == '{"a": 1}'
        assert len(stub.calls) == 2
        assert clock.sleeps == [1]

    def test_last_error_is_raised_when_attempts_run_out(self, clock):
        errors = [ConnectionError("reset")] * 3
        client, stub = make_client(clock, errors)

        with pytest.raises(ConnectionError):
            client.complete(MESSAGES)

        assert len(stub.calls) == 3
        assert clock.sleeps == [1, 2]


class TestDeadline:

    def test_timeout_shrinks_to_remaining_budget(self, clock):
        errors = [ConnectionError("slow")] * 3
        client, stub = make_client(clock, errors, cost=6, llm_total_timeout_seconds=10)

        with pytest.raises(AiProviderError, match="10 detik"):
            client.complete(MESSAGES)

        # 10s left -> 6s spent, 1s backoff -> 3s left -> 6s spent, budget gone
        assert [c["timeout"] for c in stub.calls] == [10, 3]

    def test_repair_call_shares_the_deadline(self, clock):
        client, stub = make_client(clock, ["bukan json", '{"a": 1}'], cost=8, llm_total_timeout_seconds=10)

        assert client.complete_with_repair(MESSAGES) == '{"a": 1}'
        assert [c["timeout"] for c in stub.calls] == [10, 2]
        assert stub.calls[1]["temperature"] == 0.0

    def test_no_call_once_budget_is_spent(self, clock):
        client, stub = make_client(clock, ["bukan json", '{"a": 1}'], cost=10, llm_total_timeout_seconds=10)

        with pytest.raises(AiProviderError):
            client.complete_with_repair(MESSAGES)

        assert len(stub.calls) == 1
