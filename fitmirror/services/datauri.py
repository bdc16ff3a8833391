import base64
import re
from typing import Optional, Tuple


_DATA_URI_RE = re.compile(r"^data:([^;,]+)?(?:;[^,]*)?;base64,(.+)$", re.DOTALL)


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_uri(value: str) -> Tuple[Optional[str], str]:
    """Split ``value`` into (media type, base64 body).

    Raw base64 without a ``data:`` prefix comes back with a ``None`` media type.
    """
    match = _DATA_URI_RE.match(value)
    if not match:
        return None, value
    return match.group(1), match.group(2)


def decode_data_uri(value: str) -> Tuple[Optional[str], bytes]:
    mime_type, body = split_data_uri(value)
    return mime_type, base64.b64decode(body)


def bare_media_type(content_type: Optional[str], fallback: str) -> str:
    """``image/png; charset=binary`` -> ``image/png``."""
    if not content_type:
        return fallback
    return content_type.split(";", 1)[0].strip() or fallback
