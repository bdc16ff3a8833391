from .base import ModelConfigError, TryOnProvider
from .mock import MockTryOnProvider


def get_provider(name: str) -> TryOnProvider:
    name = (name or "replicate").lower()
    if name == "mock":
        return MockTryOnProvider()
    # local import keeps the SDK off the import path for mock-only setups
    from .idm_vton import ReplicateProvider
    return ReplicateProvider()
