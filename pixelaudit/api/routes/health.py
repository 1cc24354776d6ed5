"""Health check endpoints."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Lightweight liveness probe."""

    return {"status": "ok", "service": "pixelaudit"}
