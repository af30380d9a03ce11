"""
Tests for the OpenAI-backed completer, using a fake client.
"""

import asyncio
from types import SimpleNamespace

import pytest

from tictactoe_arena import usage
from tictactoe_arena.completions import CompletionError, OpenAICompleter
from tictactoe_arena.config import ModelConfig
from tictactoe_arena.records import ChatMessage
from tictactoe_arena.usage import UsageTracker, compute_model_cost

MESSAGES = [
    ChatMessage(role="system", content="Play well"),
    ChatMessage(role="user", content="You are player X."),
]


class FakeEndpoint:
    def __init__(self, response) -> None:
        self.response = response
        self.kwargs: dict | None = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return self.response


def chat_response(content, choices=True):
    usage = SimpleNamespace(
        prompt_tokens=100,
        completion_tokens=20,
        total_tokens=120,
        prompt_tokens_details=SimpleNamespace(cached_tokens=40),
    )
    message = SimpleNamespace(content=content)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)] if choices else [],
        usage=usage,
    )


def responses_response(text, error=None):
    usage = SimpleNamespace(
        input_tokens=80,
        output_tokens=300,
        total_tokens=380,
        input_tokens_details=SimpleNamespace(cached_tokens=0),
    )
    return SimpleNamespace(
        output_text=text,
        usage=usage,
        error=error,
        status="completed",
        incomplete_details=None,
    )


def fake_client(chat=None, responses=None):
    return SimpleNamespace(
        chat=SimpleNamespace(completions=FakeEndpoint(chat)),
        responses=FakeEndpoint(responses),
    )


def complete(completer):
    return asyncio.run(completer.complete(MESSAGES, max_tokens=256, timeout_ms=5000))


class TestVerboseMode:
    def test_chat_completion(self):
        client = fake_client(chat=chat_response("hmm\n1,1"))
        tracker = UsageTracker()
        completer = OpenAICompleter(ModelConfig(id="gpt-4o"), client, tracker)

        completion = complete(completer)

        assert completion.text == "hmm\n1,1"
        assert completion.usage["cached_input"] == 40
        kwargs = client.chat.completions.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["max_tokens"] == 256
        assert "max_completion_tokens" not in kwargs
        assert kwargs["timeout"] == 5.0
        assert kwargs["messages"][0] == {"role": "system", "content": "Play well"}
        assert tracker.input == 100
        assert tracker.cached_input == 40
        assert tracker.requests == 1

    def test_reasoning_models_use_max_completion_tokens(self):
        client = fake_client(chat=chat_response("0,0"))
        completer = OpenAICompleter(ModelConfig(id="openai/o3-mini"), client)

        complete(completer)

        assert client.chat.completions.kwargs["max_completion_tokens"] == 256
        assert "max_tokens" not in client.chat.completions.kwargs

    def test_no_choices(self):
        client = fake_client(chat=chat_response(None, choices=False))
        completer = OpenAICompleter(ModelConfig(id="gpt-4o"), client)

        with pytest.raises(CompletionError):
            complete(completer)


class TestMinimalMode:
    def test_responses_api(self):
        client = fake_client(responses=responses_response("2,2"))
        model = ModelConfig(id="gpt-5", mode="minimal", reasoning_effort="low")
        completer = OpenAICompleter(model, client)

        completion = complete(completer)

        assert completion.text == "2,2"
        kwargs = client.responses.kwargs
        assert kwargs["reasoning"] == {"effort": "low"}
        assert kwargs["max_output_tokens"] == 256
        assert [item["role"] for item in kwargs["input"]] == ["developer", "user"]
        assert completer.tracker.output == 300

    def test_response_error(self):
        error = SimpleNamespace(code="server_error", message="try again")
        client = fake_client(responses=responses_response("", error=error))
        model = ModelConfig(id="gpt-5", mode="minimal")

        with pytest.raises(CompletionError, match="server_error"):
            complete(OpenAICompleter(model, client))


class TestCost:
    def test_unknown_model_has_no_cost(self):
        assert compute_model_cost("not-a-real/model-xyz", 100, 100) is None

    def test_tracker_without_usage(self):
        assert UsageTracker().cost("gpt-4o") is None

    def test_tracker_priced_by_model(self, monkeypatch):
        prices = {
            "arena-test-model": {
                "litellm_provider": "openai",
                "input_cost_per_token": 0.001,
                "output_cost_per_token": 0.002,
                "cache_read_input_token_cost": 0.0005,
            }
        }
        monkeypatch.setattr(usage, "model_cost", prices)
        tracker = UsageTracker()
        tracker.log(total=120, input=100, output=20, cached_input=40)
        tracker.log(total=30, input=20, output=10)

        # 80 uncached and 40 cached input tokens, 30 output tokens
        assert tracker.cost("arena-test-model") == pytest.approx(0.08 + 0.02 + 0.06)
        assert tracker.cost("openai/arena-test-model") == pytest.approx(0.16)
        assert tracker.cost("other-model") is None
