from fastapi import APIRouter, Request

from app.config import settings

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    state = getattr(request.app.state, "engine_state", None)
    provider_configured = bool((settings.POLYGON_API_KEY or "").strip())
    return {
        "status": "ready" if state is not None and provider_configured else "not_ready",
        "provider_configured": provider_configured,
        "tracked_underlyings": sorted(state.gamma_history.keys()) if state is not None else [],
        "cached_trade_streams": len(state.trade_cache) if state is not None else 0,
    }
