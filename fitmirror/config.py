import os
from pydantic import BaseModel


class Settings(BaseModel):
    # Replicate (IDM-VTON)
    replicate_api_token: str | None = os.getenv("REPLICATE_API_TOKEN")
    replicate_model: str = os.getenv(
        "REPLICATE_MODEL",
        "cuuupid/idm-vton:c871bb9b046607b680449ecbae55fd8c6d945e0a1948644bf2361b3d021d3ff4",
    )

    vto_provider: str = os.getenv("VTO_PROVIDER", "replicate")

    storage_dir: str = os.getenv("STORAGE_DIR", os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "storage")))

    # Outbound fetches (product URL, generated image URL)
    fetch_user_agent: str = os.getenv(
        "FETCH_USER_AGENT",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
    )
    fetch_timeout_seconds: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "60"))


settings = Settings()
