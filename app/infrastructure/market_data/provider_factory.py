"""
Options market data provider factory (settings-driven).
"""

from __future__ import annotations

from typing import Optional

from app.config import Settings, settings as default_settings
from app.infrastructure.market_data.polygon_provider import PolygonProvider
from app.infrastructure.market_data.types import OptionsDataProvider


def get_options_data_provider(settings: Optional[Settings] = None) -> OptionsDataProvider:
    cfg = settings or default_settings
    return PolygonProvider(
        api_key=cfg.POLYGON_API_KEY,
        api_base_url=cfg.POLYGON_BASE_URL,
        timeout_seconds=cfg.HTTP_TIMEOUT_SECONDS,
        chain_limit=cfg.CHAIN_SNAPSHOT_LIMIT,
    )
