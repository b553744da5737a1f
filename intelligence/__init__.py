"""
Intelligence Module
智能层 - LLM 抽象，供精选阶段使用
"""
from .llm import (
    BaseLLM,
    LLMResponse,
    Message,
    OpenAILLM,
    get_llm,
)

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "OpenAILLM",
    "get_llm",
]
