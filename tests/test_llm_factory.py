from __future__ import annotations

from types import SimpleNamespace

import pytest

from config import LLMSettings, Settings
from intelligence.llm import Message, OpenAILLM, get_llm
from pipeline.curation import LLMRanker
from pipeline.refresh import build_ranker
from utils.exceptions import ConfigurationError, LLMError


class FakeCompletions:
    def __init__(self, response) -> None:
        self.response = response
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        return self.response


class FakeAsyncClient:
    def __init__(self, response) -> None:
        self.chat = SimpleNamespace(completions=FakeCompletions(response))
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _completion(content: str):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")],
        usage=SimpleNamespace(prompt_tokens=11, completion_tokens=7, total_tokens=18),
        model="gpt-4o-mini-2024",
    )


def test_get_llm_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        get_llm(settings=LLMSettings(openai_api_key=None))


def test_get_llm_rejects_unknown_provider() -> None:
    with pytest.raises(ConfigurationError):
        get_llm(provider="mystery", settings=LLMSettings(openai_api_key="sk-test"))


def test_get_llm_builds_openai_with_settings_defaults() -> None:
    llm = get_llm(settings=LLMSettings(openai_api_key="sk-test", model_name="gpt-4o", temperature=0.1))

    assert isinstance(llm, OpenAILLM)
    assert llm.model == "gpt-4o"
    assert llm.temperature == 0.1
    assert llm.provider == "openai"


def test_build_ranker_is_none_without_key() -> None:
    settings = Settings()
    settings.llm.openai_api_key = None
    assert build_ranker(settings) is None

    settings.llm.openai_api_key = "sk-test"
    ranker = build_ranker(settings)
    assert isinstance(ranker, LLMRanker)
    assert ranker.max_per_category == settings.curation.max_per_category


@pytest.mark.asyncio
async def test_openai_llm_requests_json_object_mode() -> None:
    llm = OpenAILLM(model="gpt-4o-mini", api_key="sk-test")
    client = FakeAsyncClient(_completion('{"selected_stories": []}'))
    llm._async_client = client

    response = await llm.acomplete([Message.system("rules"), Message.user("stories")], json_mode=True)

    request = client.chat.completions.requests[0]
    assert request["response_format"] == {"type": "json_object"}
    assert request["messages"][0] == {"role": "system", "content": "rules"}
    assert response.content == '{"selected_stories": []}'
    assert response.usage["total_tokens"] == 18

    await llm.aclose()
    assert client.closed


@pytest.mark.asyncio
async def test_openai_llm_raises_on_empty_choices() -> None:
    llm = OpenAILLM(api_key="sk-test")
    llm._async_client = FakeAsyncClient(SimpleNamespace(choices=[], usage=None, model="m"))

    with pytest.raises(LLMError):
        await llm.acomplete([Message.user("hi")])
