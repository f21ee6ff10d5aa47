from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request) -> dict:
    # a cache outage degrades auth but does not take the service down
    cache = getattr(request.app.state, "cache", None)
    return {
        "status": "ok",
        "cache": "up" if cache is not None and cache.connected else "down",
    }
