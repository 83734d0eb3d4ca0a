"""JAMROOM global configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # External API
    api_base_url: str = "http://localhost:3000"
    api_token: str = ""  # bearer credential for every request
    request_timeout_s: float = 30.0

    # Audio
    sample_rate: int = 44100
    output_channels: int = 2
    block_size: int = 512
    output_device: str | None = None
    resample: bool = True  # False: reject buffers at a foreign sample rate

    # Mixer defaults (percent)
    default_volume: int = 80
    default_master_volume: int = 80

    # Progress clock
    progress_refresh_hz: float = 60.0

    # Export
    export_prefix: str = "soundboard-mix"
    export_dir: Path = Path("./exports")

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "JAMROOM_"}


settings = Settings()
