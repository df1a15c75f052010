from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from justified_layout import LayoutOptions


class AppSettings(BaseSettings):
    """Application configuration loaded from environment variables or .env.

    Env prefix: APP_
    Example: APP_LAYOUT_TARGET_ROW_HEIGHT=280
    """

    # App
    app_name: str = Field(default="Justified Layout API")
    app_version: str = Field(default="1.0.0")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Logging
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=False)
    log_file_path: Path = Field(default=Path("layout_api.log"))
    log_max_bytes: int = Field(default=5 * 1024 * 1024)  # 5 MB
    log_backup_count: int = Field(default=3)

    # Limits
    max_photos_per_request: int = Field(default=5000)

    # Rate limiting
    rate_limit_requests: int = Field(default=120)
    rate_limit_window_seconds: int = Field(default=60)

    # Layout defaults, used for options a request leaves out
    layout_min_photos_per_row: int = Field(default=2, ge=1)
    layout_max_photos_per_row: int = Field(default=8, ge=1)
    layout_target_row_height: float = Field(default=240.0, gt=0)
    layout_max_row_height: float = Field(default=350.0, gt=0)
    layout_gap: float = Field(default=4.0, ge=0)

    # CORS
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def layout_defaults(self) -> LayoutOptions:
        return LayoutOptions(
            min_photos_per_row=self.layout_min_photos_per_row,
            max_photos_per_row=self.layout_max_photos_per_row,
            target_row_height=self.layout_target_row_height,
            max_row_height=self.layout_max_row_height,
            gap=self.layout_gap,
        )
