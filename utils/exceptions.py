"""
Custom Exceptions
自定义异常类
"""
from typing import Optional


class RefreshPipelineError(Exception):
    """内容刷新流水线基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RefreshPipelineError):
    """配置错误 (缺少 API Key 等)"""
    pass


class FetchError(RefreshPipelineError):
    """数据源请求错误 (超时 / 非 2xx / 重试耗尽)"""

    def __init__(self, message: str, source: str = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source
        self.status_code = status_code


class ProviderResponseError(RefreshPipelineError):
    """数据源返回了无法解析或不完整的响应"""

    def __init__(self, message: str, source: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source


class CacheError(RefreshPipelineError):
    """缓存 RPC 错误"""
    pass


class CurationError(RefreshPipelineError):
    """精选阶段错误 (模型输出无效等)"""
    pass


class LLMError(RefreshPipelineError):
    """LLM 调用错误"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider
