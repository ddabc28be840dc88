"""Configuration management."""

from typing import Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PY_ZONES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tessellation extent (Bas-Rhin). Must stay fixed between runs so that
    # recomputed partitions line up with earlier ones.
    bbox_min_lon: float = Field(default=6.5, description="Western edge of the Voronoi extent")
    bbox_min_lat: float = Field(default=47.5, description="Southern edge of the Voronoi extent")
    bbox_max_lon: float = Field(default=9.0, description="Eastern edge of the Voronoi extent")
    bbox_max_lat: float = Field(default=50.0, description="Northern edge of the Voronoi extent")

    # Boundary documents
    sub_region_name_key: str = Field(
        default="circo_nom", description="Boundary property holding the sub-region name"
    )
    department_code: str = Field(default="67", description="Department kept by filter_department")

    # Styling
    color_saturation: int = Field(default=65, ge=0, le=100, description="Zone color saturation (%)")
    color_lightness: int = Field(default=60, ge=0, le=100, description="Zone color lightness (%)")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    @property
    def bbox(self) -> Tuple[float, float, float, float]:
        """Tessellation extent as (min_lon, min_lat, max_lon, max_lat)."""
        return (self.bbox_min_lon, self.bbox_min_lat, self.bbox_max_lon, self.bbox_max_lat)


# Instantiate singleton settings object
settings = Settings()
