from typing import Any

import replicate
import structlog

from ...config import settings
from .base import ModelConfigError


logger = structlog.get_logger("fitmirror")

# Fixed generation inputs; same seed and steps give the same image for the same pair
GARMENT_DESCRIPTION = "a clothing item"
DENOISE_STEPS = 30
SEED = 42


class ReplicateProvider:
    def __init__(self, api_token: str | None = None, model: str | None = None) -> None:
        token = api_token or settings.replicate_api_token
        if not token:
            raise ModelConfigError("Replicate API token not configured")
        self.model = model or settings.replicate_model
        self.client = replicate.Client(api_token=token)

    async def run(self, human_image: str, garment_image: str) -> Any:
        logger.info("replicate_run", model=self.model)
        return await self.client.async_run(
            self.model,
            input={
                "human_img": human_image,
                "garm_img": garment_image,
                "garment_des": GARMENT_DESCRIPTION,
                "is_checked": True,
                "is_checked_crop": False,
                "denoise_steps": DENOISE_STEPS,
                "seed": SEED,
            },
        )
