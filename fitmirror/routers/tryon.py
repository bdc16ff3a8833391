from typing import Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..schemas.tryon import ANGLES, ProductInput, TryOnRequest, TryOnResponse
from ..services.datauri import to_data_uri
from ..services.stores import PhotoStore, ResultsStore, get_photo_store, get_results_store
from ..services.tryon import ProductImageError, TryOnService
from ..services.vto_providers import ModelConfigError, get_provider


logger = structlog.get_logger("fitmirror")

router = APIRouter(prefix="/try-on", tags=["try-on"])


def _require_product(body: ProductInput) -> None:
    if not body.product_image and not body.product_url:
        raise HTTPException(status_code=400, detail="Product image or URL is required")


def _service() -> TryOnService:
    try:
        provider = get_provider(settings.vto_provider)
    except ModelConfigError as e:
        logger.error("model_not_configured", provider=settings.vto_provider, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))
    return TryOnService(provider)


async def _run(user_photos: Dict[str, str], body: ProductInput) -> TryOnResponse:
    service = _service()
    logger.info("tryon_started", angles=sorted(user_photos), by_url=not body.product_image)
    try:
        results = await service.generate(user_photos, body.product_image, body.product_url)
    except ProductImageError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not results:
        raise HTTPException(status_code=500, detail="Failed to generate any try-on images")

    logger.info(
        "tryon_completed",
        results=len(results),
        errors=sum(1 for r in results if r.error),
        fallbacks=sum(1 for r in results if r.fallback),
    )
    return TryOnResponse(results=results)


@router.post("", response_model=TryOnResponse, response_model_exclude_none=True)
async def try_on(body: TryOnRequest):
    """Generate one try-on image per angle from inline photos.

    ``userPhotos`` maps angle -> data URI (or raw base64). The garment comes
    from ``productImage`` or is fetched from ``productUrl``.
    """
    if not body.user_photos:
        raise HTTPException(status_code=400, detail="User photos are required")
    _require_product(body)
    return await _run(body.user_photos, body)


@router.post("/generate", response_model=TryOnResponse, response_model_exclude_none=True)
async def generate_from_stored_photos(
    body: ProductInput,
    photos: PhotoStore = Depends(get_photo_store),
    results_store: ResultsStore = Depends(get_results_store),
):
    """Generate from the four stored photos and keep the outcome as the latest result set."""
    stored = await photos.get_all()
    if any(angle not in stored for angle in ANGLES):
        raise HTTPException(status_code=400, detail="User photos not found. Please upload photos first.")
    _require_product(body)

    user_photos = {
        angle: to_data_uri(rec.data, rec.content_type)
        for angle, rec in stored.items()
        if angle in ANGLES
    }
    response = await _run(user_photos, body)
    await results_store.save([r.model_dump(by_alias=True, exclude_none=True) for r in response.results])
    return response
