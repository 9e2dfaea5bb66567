"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # ======================
    # Market Data (Polygon)
    # ======================
    POLYGON_API_KEY: Optional[str] = None
    POLYGON_BASE_URL: str = "https://api.polygon.io"
    HTTP_TIMEOUT_SECONDS: float = 15.0
    CHAIN_SNAPSHOT_LIMIT: int = 250

    # ======================
    # Engine state windows
    # ======================
    GAMMA_HISTORY_WINDOW_SECONDS: int = 15 * 60
    TRADE_CACHE_TTL_SECONDS: int = 15
    BIAS_MEMORY_TTL_SECONDS: int = 60

    # ======================
    # Flow sampling
    # ======================
    FLOW_TOP_CONTRACTS: int = 10
    TRADE_LOOKBACK_SECONDS: int = 5 * 60
    TRADE_FETCH_LIMIT: int = 200

    # ======================
    # Unusual scan
    # ======================
    SCAN_MIN_SCORE: float = 5.0
    SCAN_MIN_VOLUME: int = 5

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )


settings = Settings()
