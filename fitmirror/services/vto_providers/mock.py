from io import BytesIO
from typing import List

from PIL import Image

from ..datauri import decode_data_uri


CHUNK_SIZE = 64 * 1024


def _open(payload: str) -> Image.Image:
    _, raw = decode_data_uri(payload)
    return Image.open(BytesIO(raw)).convert("RGB")


class MockTryOnProvider:
    """Side-by-side composite of person and garment, returned as binary fragments
    the way a streaming model output arrives."""

    async def run(self, human_image: str, garment_image: str) -> List[bytes]:
        try:
            user_img = _open(human_image)
            garment_img = _open(garment_image)
        except Exception:
            # If open fails, return an empty placeholder
            canvas = Image.new("RGB", (512, 512), color=(200, 200, 200))
        else:
            # Resize garment image to match user height proportionally
            target_h = user_img.height
            ratio = target_h / max(1, garment_img.height)
            garment_resized = garment_img.resize((max(1, int(garment_img.width * ratio)), target_h))

            canvas = Image.new("RGB", (user_img.width + garment_resized.width, target_h), color=(240, 240, 240))
            canvas.paste(user_img, (0, 0))
            canvas.paste(garment_resized, (user_img.width, 0))

        out = BytesIO()
        canvas.save(out, format="JPEG", quality=90)
        data = out.getvalue()
        return [data[i:i + CHUNK_SIZE] for i in range(0, len(data), CHUNK_SIZE)]
