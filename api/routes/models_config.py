"""Model configuration endpoint: the chat models the UI may offer."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.config.models import get_models
from api.models.responses import ModelsResponse

router = APIRouter()


@router.get("/api/config/models", response_model=ModelsResponse)
async def list_models():
    return JSONResponse(
        content={"models": get_models()},
        headers={"Cache-Control": "public, max-age=300, s-maxage=300"},
    )
