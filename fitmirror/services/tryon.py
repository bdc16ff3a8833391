from typing import Dict, List, Optional

import httpx
import structlog
from fastapi.concurrency import run_in_threadpool

from ..config import settings
from ..schemas.tryon import ANGLES, AngleResult
from .datauri import bare_media_type, to_data_uri
from .model_output import classify_output, resolve_output
from .normalizer import normalize_image
from .vto_providers import TryOnProvider


logger = structlog.get_logger("fitmirror")

ANGLE_ERROR = "Failed to generate try-on for this angle"


class ProductImageError(Exception):
    """The garment image could not be obtained from the given URL."""


def _product_fetch_message(response: httpx.Response) -> str:
    message = f"Failed to fetch image from URL ({response.status_code} {response.reason_phrase}). "
    if response.status_code == 403:
        message += (
            "The website is blocking access. Try using a direct image URL "
            "(right-click image -> 'Copy Image Address') or download and upload the image instead."
        )
    elif response.status_code == 404:
        message += "The image was not found at this URL. Please check the URL and try again."
    else:
        message += (
            "Please make sure you're using a direct image URL (ending in .jpg, .png, etc.) "
            "and not a product page URL."
        )
    return message


class TryOnService:
    def __init__(self, provider: TryOnProvider) -> None:
        self.provider = provider

    async def fetch_product_image(self, url: str) -> str:
        logger.info("product_fetch_started", url=url)
        try:
            async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds, follow_redirects=True) as client:
                resp = await client.get(url, headers={"User-Agent": settings.fetch_user_agent})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("product_fetch_error", url=url, error=str(e))
            raise ProductImageError("Failed to fetch product image from URL") from e

        if not resp.is_success:
            logger.warning("product_fetch_rejected", url=url, status=resp.status_code)
            raise ProductImageError(_product_fetch_message(resp))

        mime_type = bare_media_type(resp.headers.get("content-type"), "image/jpeg")
        logger.info("product_fetch_completed", url=url, size=len(resp.content), content_type=mime_type)
        return to_data_uri(resp.content, mime_type)

    async def prepare_product_image(self, product_image: Optional[str], product_url: Optional[str]) -> str:
        if product_image:
            return await run_in_threadpool(normalize_image, product_image)
        if product_url:
            fetched = await self.fetch_product_image(product_url)
            return await run_in_threadpool(normalize_image, fetched)
        raise ProductImageError("Product image or URL is required")

    async def _download_generated(self, url: str) -> str:
        async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds, follow_redirects=True) as client:
            resp = await client.get(url)
            resp.raise_for_status()
        return to_data_uri(resp.content, bare_media_type(resp.headers.get("content-type"), "image/png"))

    async def _generate_angle(self, angle: str, user_photo: str, product_image: str) -> AngleResult:
        raw = await self.provider.run(user_photo, product_image)
        image_url = await resolve_output(classify_output(raw))
        logger.info("angle_generated", angle=angle, has_output=bool(image_url))

        if not image_url:
            logger.warning("angle_output_empty", angle=angle)
            return AngleResult(angle=angle, image_url=user_photo, fallback=True)

        if image_url.startswith("http"):
            try:
                image_url = await self._download_generated(image_url)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning("generated_fetch_failed", angle=angle, error=str(e))
                return AngleResult(angle=angle, image_url=user_photo, fallback=True)

        return AngleResult(angle=angle, image_url=image_url)

    async def generate(
        self,
        user_photos: Dict[str, str],
        product_image: Optional[str] = None,
        product_url: Optional[str] = None,
    ) -> List[AngleResult]:
        """Run the model once per present angle, in fixed order, one at a time.

        Raises ProductImageError when the garment cannot be obtained. A failing
        angle is recorded with the original photo and an error marker; the
        others carry on.
        """
        normalized: Dict[str, str] = {}
        for angle, photo in user_photos.items():
            normalized[angle] = await run_in_threadpool(normalize_image, photo)

        garment = await self.prepare_product_image(product_image, product_url)

        results: List[AngleResult] = []
        for angle in ANGLES:
            photo = normalized.get(angle)
            if not photo:
                continue
            try:
                results.append(await self._generate_angle(angle, photo, garment))
            except Exception as e:
                logger.error("angle_failed", angle=angle, error=str(e), error_type=type(e).__name__, exc_info=True)
                results.append(AngleResult(angle=angle, image_url=photo, error=ANGLE_ERROR))
        return results
