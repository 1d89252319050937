from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field
import os
from dotenv import load_dotenv

# 加载 .env（可选）
load_dotenv()


def _split_env_list(var_name: str, default_value: str) -> list[str]:
    raw = os.getenv(var_name, default_value)
    return [part.strip() for part in raw.split(",") if part.strip()]


def _llm_api_key_default() -> Optional[str]:
    # 兼容旧的 OPENAI_API_KEY 变量名
    return os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY")


class Settings(BaseModel):
    # OpenAI 兼容的 chat completions 服务
    LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", "https://api.openai.com")
    LLM_ENDPOINT_PATH: str = os.getenv("LLM_ENDPOINT_PATH", "/v1/chat/completions")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4")
    LLM_API_KEY: Optional[str] = Field(default_factory=_llm_api_key_default)
    LLM_TIMEOUT_S: float = float(os.getenv("LLM_TIMEOUT_S", "120"))

    # 各步骤的生成参数
    # 字段抽取：低温度，输出稳定的 JSON
    EXTRACTION_TEMPERATURE: float = float(os.getenv("EXTRACTION_TEMPERATURE", "0.1"))
    EXTRACTION_MAX_TOKENS: int = int(os.getenv("EXTRACTION_MAX_TOKENS", "500"))
    # 摘要：偏确定性，最多 10 句
    SUMMARY_TEMPERATURE: float = float(os.getenv("SUMMARY_TEMPERATURE", "0.3"))
    SUMMARY_MAX_TOKENS: int = int(os.getenv("SUMMARY_MAX_TOKENS", "300"))
    # 事故分析：偏生成性，篇幅较长
    ANALYSIS_TEMPERATURE: float = float(os.getenv("ANALYSIS_TEMPERATURE", "0.7"))
    ANALYSIS_MAX_TOKENS: int = int(os.getenv("ANALYSIS_MAX_TOKENS", "800"))

    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "incident_analysis")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "incident_analysis")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "incident_analysis")
    POSTGRES_DSN: Optional[str] = os.getenv("POSTGRES_DSN")
    POSTGRES_POOL_MIN: int = int(os.getenv("POSTGRES_POOL_MIN", "1"))
    POSTGRES_POOL_MAX: int = int(os.getenv("POSTGRES_POOL_MAX", "10"))
    POSTGRES_INIT_RETRIES: int = int(os.getenv("POSTGRES_INIT_RETRIES", "20"))
    POSTGRES_INIT_DELAY: float = float(os.getenv("POSTGRES_INIT_DELAY", "1"))

    # JWT 由外部身份服务签发，这里只做校验
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_HOURS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))

    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: _split_env_list("CORS_ALLOW_ORIGINS", "*")
    )
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
