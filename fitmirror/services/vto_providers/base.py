from typing import Any, Protocol


class ModelConfigError(RuntimeError):
    """The selected provider is missing required configuration."""


class TryOnProvider(Protocol):
    async def run(self, human_image: str, garment_image: str) -> Any:  # raw model output, see model_output
        ...
