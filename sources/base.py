"""
Base Source Adapter
所有数据源适配器的抽象基类
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import hashlib
import html as html_lib
import logging
import re
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from core import ContentType
from .http import SourceHttp


logger = logging.getLogger(__name__)

T = TypeVar("T")  # 归一化后的条目类型


@dataclass
class SourceBatch(Generic[T]):
    """一个数据源一次抓取的归一化结果"""
    source: str
    content_type: ContentType
    items: List[T] = field(default_factory=list)
    total_results: Optional[int] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class BaseSourceAdapter(ABC, Generic[T]):
    """
    数据源适配器抽象基类
    每个具体适配器只负责请求与字段映射，重试由 SourceHttp 统一处理
    """

    # 缺失时记录到 missing_envs 的环境变量名
    required_env: Sequence[str] = ()

    @property
    @abstractmethod
    def name(self) -> str:
        """返回数据源 source 键"""
        pass

    @property
    @abstractmethod
    def content_type(self) -> ContentType:
        """返回内容类型"""
        pass

    @abstractmethod
    async def fetch(self, http: SourceHttp) -> SourceBatch[T]:
        """
        抓取并归一化

        Args:
            http: 带重试策略的 HTTP 客户端

        Returns:
            归一化后的 SourceBatch
        """
        pass

    def is_configured(self) -> bool:
        """
        检查是否已正确配置
        子类可以覆盖此方法来检查必要的API密钥等
        """
        return True

    def _log_fetch(self, count: int):
        """记录抓取日志"""
        logger.info(f"[{self.name}] normalized {count} items")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


def parse_datetime(value: Any) -> Optional[datetime]:
    """解析 ISO-8601 / RFC 2822 / 'YYYY-MM-DD HH:MM:SS' 时间，统一为 UTC"""
    if isinstance(value, datetime):
        dt = value
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    text = str(value or "").strip()
    if not text:
        return None

    normalized = text.replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except ValueError:
        pass

    try:
        dt2 = parsedate_to_datetime(text)
        if dt2.tzinfo is None:
            dt2 = dt2.replace(tzinfo=timezone.utc)
        return dt2.astimezone(timezone.utc)
    except (TypeError, ValueError):
        return None


def strip_html(value: Any) -> str:
    text = str(value or "")
    text = re.sub(r"<[^>]+>", " ", text)
    text = html_lib.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def coalesce_text(*values: Any) -> str:
    for value in values:
        text = str(value or "").strip()
        if text:
            return text
    return ""


def stable_id(*parts: Any) -> str:
    """优先使用 URL 作为 id；没有 URL 时退化为内容哈希"""
    for part in parts:
        text = str(part or "").strip()
        if text.startswith("http://") or text.startswith("https://"):
            return text
    joined = "|".join(str(part or "").strip() for part in parts)
    return "sha1:" + hashlib.sha1(joined.encode("utf-8")).hexdigest()[:16]


def as_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]
