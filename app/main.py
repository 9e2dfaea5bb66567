"""
FastAPI Main Application
0DTE options analytics: unusual trades, gamma regime, walls, flow and bias
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.logging import setup_logging
from app.domain.options.state.market_state import EngineState
from app.infrastructure.market_data.provider_factory import get_options_data_provider
from app.services.unusual_scan_service import UnusualScanService
from app.services.zero_dte_service import ZeroDteService

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_engine_state() -> EngineState:
    return EngineState(
        gamma_window_seconds=settings.GAMMA_HISTORY_WINDOW_SECONDS,
        trade_cache_ttl_seconds=settings.TRADE_CACHE_TTL_SECONDS,
        bias_memory_ttl_seconds=settings.BIAS_MEMORY_TTL_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Wires the provider, shared engine state and services
    """
    logger.info("=" * 60)
    logger.info("Starting 0DTE Options Analytics")
    logger.info("=" * 60)

    if not (settings.POLYGON_API_KEY or "").strip():
        logger.warning("POLYGON_API_KEY not set; market data endpoints will return 502")

    provider = get_options_data_provider(settings)
    state = build_engine_state()
    app.state.engine_state = state
    app.state.zero_dte_service = ZeroDteService(provider, state, settings)
    app.state.unusual_scan_service = UnusualScanService(provider, settings)

    logger.info("Engine state: gamma window %ss, trade cache %ss, bias memory %ss",
                settings.GAMMA_HISTORY_WINDOW_SECONDS,
                settings.TRADE_CACHE_TTL_SECONDS,
                settings.BIAS_MEMORY_TTL_SECONDS)
    logger.info("API Server: http://%s:%s", settings.API_HOST, settings.API_PORT)

    yield

    state.reset()
    logger.info("0DTE Options Analytics shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="0DTE Options Analytics",
    description="Unusual options scoring, gamma regime, dealer walls, flow and directional bias",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "0DTE Options Analytics",
        "version": "1.0.0",
        "docs": "/docs",
    }


# Import and include routers
from app.api.routes import health
from app.api.routes.options import router as options_router

app.include_router(health.router, tags=["Health"])
app.include_router(options_router.router, prefix="/api/v1", tags=["Options"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
