import binascii
from io import BytesIO

import structlog
from PIL import Image
from pillow_heif import register_heif_opener

from .datauri import split_data_uri, to_data_uri


register_heif_opener()

logger = structlog.get_logger("fitmirror")

# ISO-BMFF "ftyp" box brands written by phone cameras
HEIC_BRANDS = (b"ftypheic", b"ftypheix", b"ftyphev", b"ftyphem")

JPEG_QUALITY = 90


def is_heic(data: bytes) -> bool:
    header = data[:12]
    return any(brand in header for brand in HEIC_BRANDS)


def _heic_to_jpeg(data: bytes) -> bytes:
    with Image.open(BytesIO(data)) as img:
        rgb = img.convert("RGB")
    out = BytesIO()
    rgb.save(out, format="JPEG", quality=JPEG_QUALITY)
    return out.getvalue()


def normalize_image(payload: str) -> str:
    """Transcode a HEIC payload (data URI or raw base64) to a JPEG data URI.

    Anything that is not HEIC is returned unchanged. Conversion problems are
    logged and the original payload is returned; this function never raises.
    """
    try:
        _, body = split_data_uri(payload)
        raw = binascii.a2b_base64(body)
    except (binascii.Error, ValueError) as e:
        logger.warning("image_decode_failed", error=str(e))
        return payload

    if not is_heic(raw):
        return payload

    logger.info("heic_detected", size=len(raw))
    try:
        converted = _heic_to_jpeg(raw)
    except Exception as e:
        logger.error("heic_conversion_failed", error=str(e), exc_info=True)
        return payload

    logger.info("heic_converted", size=len(converted))
    return to_data_uri(converted, "image/jpeg")
