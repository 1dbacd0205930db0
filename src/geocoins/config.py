"""Runtime configuration for GeoCoins."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="GEOCOINS_", env_file=".env", extra="ignore")

    app_name: str = "geocoins"
    log_level: str = "INFO"
    tile_degrees: float = Field(default=1e-4, gt=0, description="Width of one grid cell in degrees.")
    neighborhood_size: int = Field(default=8, ge=0, description="Cells revealed in each direction around the player.")
    pit_spawn_probability: float = Field(default=0.1, ge=0, le=1)
    start_lat: float = 36.9995
    start_lng: float = -122.0533
    save_path: str = Field(
        default="geocoins_save.json",
        description="File holding the snapshot written at the end of every session.",
    )
    shutdown_timeout_seconds: float = 5.0


settings = Settings()
