"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class NewsProviderSettings(BaseSettings):
    """新闻数据源 API 配置"""
    newsapi_key: Optional[str] = Field(default=None, description="NewsAPI Key")
    gnews_api_key: Optional[str] = Field(default=None, description="GNews API Key")
    thenewsapi_key: Optional[str] = Field(default=None, description="TheNewsAPI Token")
    newsdata_api_key: Optional[str] = Field(default=None, description="NewsData.io API Key")
    max_articles_per_source: int = Field(default=20, description="每个数据源最大文章数")

    class Config:
        env_prefix = "NEWS_"


class StocksProviderSettings(BaseSettings):
    """行情数据源配置"""
    rapidapi_key: Optional[str] = Field(default=None, description="RapidAPI Key (Yahoo Finance)")
    symbols: List[str] = Field(
        default_factory=lambda: ["AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "NVDA", "META", "NFLX", "^GSPC", "^DJI", "^IXIC"],
        description="批量查询的股票代码",
    )

    class Config:
        env_prefix = "STOCKS_"


class SportsProviderSettings(BaseSettings):
    """体育赛事数据源配置"""
    thesportsdb_api_key: Optional[str] = Field(default="123", description="TheSportsDB Key (公共 key 为 123)")
    espn_leagues: List[str] = Field(default_factory=lambda: ["nba", "nfl", "mlb", "nhl"], description="ESPN 联赛")
    max_games_per_source: int = Field(default=15, description="每个数据源最大赛事数")

    class Config:
        env_prefix = "SPORTS_"


class FetchSettings(BaseSettings):
    """抓取重试配置"""
    max_tries: int = Field(default=3, description="每次请求最大尝试次数")
    base_delay_ms: int = Field(default=500, description="指数退避基础延迟(毫秒)")
    timeout_ms: int = Field(default=10000, description="单次尝试超时(毫秒)")

    class Config:
        env_prefix = "FETCH_"


class CacheSettings(BaseSettings):
    """内容缓存 / RPC 配置"""
    supabase_url: Optional[str] = Field(default=None, description="Supabase 项目 URL (为空则使用内存缓存)")
    service_role_key: Optional[str] = Field(default=None, description="Service Role Key")
    worker_auth_token: Optional[str] = Field(default=None, description="Worker 专用令牌")
    expires_hours: int = Field(default=12, description="单源缓存过期时间(小时)")
    curated_source: str = Field(default="top_ten_ai_curated", description="精选结果缓存 source 键")
    curated_expires_hours: int = Field(default=12, description="精选结果过期时间(小时)")
    rpc_timeout: float = Field(default=15.0, description="RPC 超时(秒)")

    class Config:
        env_prefix = "CACHE_"


class CurationSettings(BaseSettings):
    """精选配置"""
    shortlist_size: int = Field(default=25, description="多样性候选上限")
    target_count: int = Field(default=10, description="最终精选条数")
    max_per_category: int = Field(default=3, description="每个类别最多条数")

    class Config:
        env_prefix = "CURATION_"


class ScoringSettings(BaseSettings):
    """可调的体育评分常量"""
    late_october_mlb_boost: int = Field(default=20, description="十月下旬 MLB 比赛额外加分")
    late_october_start_day: int = Field(default=15, description="十月下旬起始日")
    followed_team: str = Field(default="Dodgers", description="重点关注球队")
    followed_team_boost: int = Field(default=15, description="关注球队额外加分")

    class Config:
        env_prefix = "SCORING_"


class LLMSettings(BaseSettings):
    """LLM 配置"""
    provider: str = Field(default="openai", description="LLM提供商: openai")
    model_name: Optional[str] = Field(default=None, description="模型名称(不填则使用默认)")
    temperature: float = Field(default=0.25, description="生成温度")
    max_tokens: int = Field(default=4000, description="最大生成token数")
    timeout: float = Field(default=60.0, description="请求超时(秒)")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")

    class Config:
        env_prefix = "LLM_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    news: NewsProviderSettings = Field(default_factory=NewsProviderSettings)
    stocks: StocksProviderSettings = Field(default_factory=StocksProviderSettings)
    sports: SportsProviderSettings = Field(default_factory=SportsProviderSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    curation: CurationSettings = Field(default_factory=CurationSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            news=NewsProviderSettings(),
            stocks=StocksProviderSettings(),
            sports=SportsProviderSettings(),
            fetch=FetchSettings(),
            cache=CacheSettings(),
            curation=CurationSettings(),
            scoring=ScoringSettings(),
            llm=LLMSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()


# 便捷访问
def get_cache_settings() -> CacheSettings:
    return get_settings().cache


def get_llm_settings() -> LLMSettings:
    return get_settings().llm
