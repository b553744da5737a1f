"""
LLM Factory
工厂函数 - 根据配置自动创建 LLM 实例
"""
from typing import Optional
import logging

from config import LLMSettings, get_llm_settings
from utils.exceptions import ConfigurationError
from .base import BaseLLM
from .openai_llm import OpenAILLM


logger = logging.getLogger(__name__)


# 默认模型配置
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[LLMSettings] = None,
    **kwargs,
) -> BaseLLM:
    """
    获取 LLM 实例

    自动从 .env 读取配置，也可手动指定

    Args:
        provider: LLM 供应商 (openai)
        model: 模型名称 (不传则使用默认)
        settings: 显式注入的 LLM 配置
        **kwargs: 额外参数 (temperature, max_tokens 等)

    Returns:
        BaseLLM 实例

    Raises:
        ConfigurationError: 缺少 API Key 或供应商不受支持
    """
    settings = settings or get_llm_settings()

    provider = provider or settings.provider
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    api_keys = {
        "openai": settings.openai_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    default_params = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
        "timeout": settings.timeout,
    }
    for key, value in default_params.items():
        if key not in kwargs:
            kwargs[key] = value

    if provider == "openai":
        if not api_key:
            raise ConfigurationError("LLM_OPENAI_API_KEY not configured", {"provider": provider})
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None),
            **kwargs,
        )
    raise ConfigurationError(f"Unsupported LLM provider: {provider}")
