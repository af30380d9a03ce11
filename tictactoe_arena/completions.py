import abc
import dataclasses as dc
import logging
from typing import Any, cast

import openai

from tictactoe_arena import settings
from tictactoe_arena.config import ModelConfig
from tictactoe_arena.records import ChatMessage
from tictactoe_arena.usage import UsageTracker

LOGGER = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    pass


@dc.dataclass(frozen=True)
class Completion:
    text: str | None
    usage: dict[str, int] | None = None


class Completer(abc.ABC):
    @abc.abstractmethod
    async def complete(
        self, messages: list[ChatMessage], *, max_tokens: int, timeout_ms: int
    ) -> Completion:
        raise NotImplementedError


def get_openai_client(model: ModelConfig) -> openai.AsyncOpenAI:
    api_key = model.resolve_api_key()
    if not api_key:
        raise ValueError(f"No API key available for {model.id}")

    return openai.AsyncOpenAI(base_url=model.base_url, api_key=api_key)


class OpenAICompleter(Completer):
    """
    Chat Completions in `verbose` mode, Responses API with a reasoning effort
    in `minimal` mode.
    """

    def __init__(
        self,
        model: ModelConfig,
        client: openai.AsyncOpenAI,
        tracker: UsageTracker | None = None,
        **kwargs,
    ) -> None:
        if tracker is None:
            tracker = UsageTracker()
        self.model = model
        self.client = client
        self.tracker = tracker
        self.kwargs = kwargs

    async def complete(
        self, messages: list[ChatMessage], *, max_tokens: int, timeout_ms: int
    ) -> Completion:
        if self.model.mode == "minimal":
            return await self.complete_responses(messages, max_tokens, timeout_ms)
        return await self.complete_chat(messages, max_tokens, timeout_ms)

    def uses_max_completion_tokens(self) -> bool:
        model_name = self.model.id.rsplit("/", 1)[-1]
        return model_name.startswith(settings.MAX_COMPLETION_TOKENS_PREFIXES)

    async def complete_chat(
        self, messages: list[ChatMessage], max_tokens: int, timeout_ms: int
    ) -> Completion:
        params: dict[str, Any] = {"temperature": 1}
        if self.uses_max_completion_tokens():
            params["max_completion_tokens"] = max_tokens
        else:
            params["max_tokens"] = max_tokens

        response = await self.client.chat.completions.create(
            model=self.model.id,
            messages=cast(
                Any, [{"role": msg.role, "content": msg.content} for msg in messages]
            ),
            timeout=timeout_ms / 1000,
            **params,
            **cast(Any, self.kwargs),
        )

        usage: dict[str, int] | None = None
        if response.usage is not None:
            cached_input = 0
            if response.usage.prompt_tokens_details:
                cached_input = response.usage.prompt_tokens_details.cached_tokens or 0

            usage = {
                "input": response.usage.prompt_tokens,
                "output": response.usage.completion_tokens,
                "total": response.usage.total_tokens,
                "cached_input": cached_input,
            }
            self.tracker.log(**usage)

        if not response.choices:
            raise CompletionError(f"No choices in response: {response!r}")

        return Completion(text=response.choices[0].message.content, usage=usage)

    async def complete_responses(
        self, messages: list[ChatMessage], max_tokens: int, timeout_ms: int
    ) -> Completion:
        input = [
            {
                "role": "developer" if msg.role == "system" else msg.role,
                "content": msg.content,
            }
            for msg in messages
        ]

        response = await self.client.responses.create(
            model=self.model.id,
            input=cast(Any, input),
            reasoning=cast(Any, {"effort": self.model.effort}),
            max_output_tokens=max_tokens,
            timeout=timeout_ms / 1000,
            **cast(Any, self.kwargs),
        )

        usage: dict[str, int] | None = None
        if response.usage is not None:
            cached_input = 0
            if response.usage.input_tokens_details:
                cached_input = response.usage.input_tokens_details.cached_tokens or 0

            usage = {
                "input": response.usage.input_tokens,
                "output": response.usage.output_tokens,
                "total": response.usage.total_tokens,
                "cached_input": cached_input,
            }
            self.tracker.log(**usage)

        if response.error is not None:
            raise CompletionError(
                f"{response.error.code}: {response.error.message}"
            )

        if response.status == "incomplete":
            LOGGER.warning(
                "Incomplete response from %s: %s",
                self.model.key,
                response.incomplete_details,
            )

        return Completion(text=response.output_text, usage=usage)
