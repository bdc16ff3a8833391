from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Angle(str, Enum):
    front = "front"
    back = "back"
    left = "left"
    right = "right"


ANGLES: List[str] = [a.value for a in Angle]


class ProductInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_url: Optional[str] = Field(None, alias="productUrl")
    product_image: Optional[str] = Field(None, alias="productImage")


class TryOnRequest(ProductInput):
    user_photos: Optional[Dict[str, str]] = Field(None, alias="userPhotos")


class AngleResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    angle: str
    image_url: str = Field(..., alias="imageUrl")
    error: Optional[str] = None
    # original photo echoed because the generated image could not be obtained
    fallback: Optional[bool] = None


class TryOnResponse(BaseModel):
    results: List[AngleResult]


class ResultSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: List[AngleResult]
    saved_at: int = Field(..., alias="savedAt")


class PhotoInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    angle: str
    content_type: str = Field(..., alias="contentType")
    filename: Optional[str] = None
    size: int
    saved_at: int = Field(..., alias="savedAt")


class PhotoList(BaseModel):
    photos: List[PhotoInfo]
    complete: bool
