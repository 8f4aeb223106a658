from fastapi import APIRouter, Request

from edge_proxy.vars import SERVICE_NAME

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/platforms")
async def list_platforms(request: Request):
    """Registered platform keys and their upstream origins."""
    return dict(request.app.state.platforms)
