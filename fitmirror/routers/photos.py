from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from ..schemas.tryon import ANGLES, Angle, PhotoInfo, PhotoList
from ..services.stores import PhotoStore, get_photo_store


router = APIRouter(prefix="/photos", tags=["photos"])


@router.put("/{angle}", response_model=PhotoInfo)
async def save_photo(angle: Angle, file: UploadFile = File(...), store: PhotoStore = Depends(get_photo_store)):
    # HEIC often arrives without a useful content type; the try-on pipeline sniffs bytes anyway
    data = await file.read()
    await store.save(angle.value, data, file.content_type or "application/octet-stream", file.filename)
    record = await store.get(angle.value)
    return PhotoInfo(
        angle=record.angle,
        content_type=record.content_type,
        filename=record.filename,
        size=len(record.data),
        saved_at=record.saved_at,
    )


@router.get("", response_model=PhotoList)
async def list_photos(store: PhotoStore = Depends(get_photo_store)):
    records = await store.get_all()
    photos = [
        PhotoInfo(angle=r.angle, content_type=r.content_type, filename=r.filename, size=len(r.data), saved_at=r.saved_at)
        for r in (records[angle] for angle in ANGLES if angle in records)
    ]
    return PhotoList(photos=photos, complete=len(photos) == len(ANGLES))


@router.get("/{angle}")
async def get_photo(angle: Angle, store: PhotoStore = Depends(get_photo_store)):
    record = await store.get(angle.value)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No {angle.value} photo saved")
    return Response(content=record.data, media_type=record.content_type)


@router.delete("")
async def clear_photos(store: PhotoStore = Depends(get_photo_store)):
    await store.clear()
    return {"ok": True}
