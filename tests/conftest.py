import base64
from typing import Any, Dict, List, Tuple

import pytest

from fitmirror.main import app
from fitmirror.services.stores import PhotoStore, ResultsStore, get_photo_store, get_results_store


def data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


class FakeProvider:
    """Stands in for the hosted model. ``outputs`` maps the human image it is
    called with to what it returns; an Exception value is raised instead."""

    def __init__(self, outputs: Dict[str, Any] | None = None, default: Any = "https://replicate.delivery/out.png") -> None:
        self.outputs = outputs or {}
        self.default = default
        self.calls: List[Tuple[str, str]] = []

    async def run(self, human_image: str, garment_image: str) -> Any:
        self.calls.append((human_image, garment_image))
        out = self.outputs.get(human_image, self.default)
        if isinstance(out, Exception):
            raise out
        return out


@pytest.fixture
def photos_by_angle() -> Dict[str, str]:
    return {angle: data_uri(f"{angle}-bytes".encode()) for angle in ("front", "back", "left", "right")}


@pytest.fixture
def stores(tmp_path):
    photos = PhotoStore(str(tmp_path / "photos.db"))
    results = ResultsStore(str(tmp_path / "results.db"))
    app.dependency_overrides[get_photo_store] = lambda: photos
    app.dependency_overrides[get_results_store] = lambda: results
    yield photos, results
    app.dependency_overrides.clear()
    photos.close()
    results.close()
