"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chekprint.printing.encoder import CharacterProtocol, LabelProtocol, Profile


class LabelSettings(BaseSettings):
    """TSPL label stock settings."""

    width_mm: float = 58
    height_mm: Optional[float] = None  # None = size to content
    gap_mm: float = 2
    dpi: int = 203
    copies: int = Field(default=1, ge=1)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHEKPRINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    debug: bool = False

    # Encoding
    protocol: Literal["escpos", "tspl"] = "escpos"
    encoding: str = "utf-8"
    page_width: int = Field(default=32, ge=1)
    code_table: int = Field(default=2, ge=0, le=255)

    # Transport
    transport: Literal["serial", "usb", "mock"] = "serial"
    printer_port: Optional[str] = None
    baudrate: int = 9600
    usb_vendor_id: Optional[int] = None
    scan_timeout: float = Field(default=5.0, gt=0)
    write_timeout: float = Field(default=15.0, gt=0)

    # Nested settings
    label: LabelSettings = Field(default_factory=LabelSettings)

    def build_profile(self) -> Profile:
        """Encoder profile for the configured protocol."""
        if self.protocol == "tspl":
            return LabelProtocol(
                width_mm=self.label.width_mm,
                height_mm=self.label.height_mm,
                gap_mm=self.label.gap_mm,
                dpi=self.label.dpi,
                copies=self.label.copies,
                columns=self.page_width,
                encoding=self.encoding,
            )
        return CharacterProtocol(
            columns=self.page_width,
            encoding=self.encoding,
            code_table=self.code_table,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
