import mimetypes
from typing import Any, Dict, List

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import Response

from ..config import settings
from ..schemas.tryon import Angle, AngleResult, ResultSet
from ..services.datauri import bare_media_type, decode_data_uri
from ..services.stores import ResultsStore, get_results_store


router = APIRouter(prefix="/results", tags=["results"])

DOWNLOAD_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}


@router.put("/latest", response_model=ResultSet, response_model_exclude_none=True)
async def save_latest(results: List[AngleResult] = Body(..., embed=True), store: ResultsStore = Depends(get_results_store)):
    await store.save([r.model_dump(by_alias=True, exclude_none=True) for r in results])
    return await store.get()


@router.get("/latest", response_model=ResultSet, response_model_exclude_none=True)
async def get_latest(store: ResultsStore = Depends(get_results_store)):
    data = await store.get()
    if data is None:
        raise HTTPException(status_code=404, detail="No try-on results saved")
    return data


async def _image_bytes(image_url: str) -> tuple[bytes, str]:
    if image_url.startswith("http"):
        async with httpx.AsyncClient(timeout=settings.fetch_timeout_seconds, follow_redirects=True) as client:
            resp = await client.get(image_url)
            resp.raise_for_status()
            return resp.content, bare_media_type(resp.headers.get("content-type"), "image/png")
    mime_type, data = decode_data_uri(image_url)
    return data, mime_type or "image/png"


@router.get("/latest/{angle}")
async def download_result(angle: Angle, store: ResultsStore = Depends(get_results_store)):
    """Download one generated image as an attachment."""
    data = await store.get()
    entries: List[Dict[str, Any]] = (data or {}).get("results") or []
    entry = next((e for e in entries if e.get("angle") == angle.value), None)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No {angle.value} result saved")

    try:
        content, media_type = await _image_bytes(entry["imageUrl"])
    except httpx.HTTPStatusError as e:
        raise HTTPException(status_code=502, detail=f"Error fetching image: {e.response.status_code}")
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        raise HTTPException(status_code=502, detail=f"Error reading image: {str(e)}")

    ext = DOWNLOAD_EXTENSIONS.get(media_type) or mimetypes.guess_extension(media_type) or ".png"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="fitmirror-{angle.value}{ext}"'},
    )
