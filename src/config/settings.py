"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use WELLINGTON_ prefix (e.g., WELLINGTON_OUTPUT_STYLE=compressed).
List settings take JSON (e.g., WELLINGTON_INCLUDE_PATHS='["vendor", "lib"]').

Settings can also be loaded from a .env file in the project root.

The default file extension (.scss) and the partial-file prefix (_) are
fixed conventions and deliberately not settings.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.sprites import LAYOUTS


OUTPUT_STYLES = ("nested", "expanded", "compact", "compressed")


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use WELLINGTON_ prefix.

    Examples:
        WELLINGTON_INCLUDE_PATHS='["vendor/sass"]'
        WELLINGTON_IMAGE_DIR=img
        WELLINGTON_OUTPUT_STYLE=compressed
        WELLINGTON_CUSTOM_FUNCTIONS='["foo($bar, $baz)"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="WELLINGTON_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Import resolution
    include_paths: List[str] = Field(
        default_factory=list,
        description="Directories searched for imports after the importing file's own directory",
    )

    # Sprite and image configuration
    image_dir: Optional[str] = Field(
        default=None,
        description="Base directory for sprite globs and image files (default: root file's directory)",
    )

    gen_img_dir: Optional[str] = Field(
        default=None,
        description="Directory receiving packed sprite sheets (default: image directory)",
    )

    build_dir: Optional[str] = Field(
        default=None,
        description="Directory CSS is written to; generated URLs are relative to it when set",
    )

    sprite_spacing: int = Field(
        default=0,
        ge=0,
        description="Default pixels between images in a packed sheet",
    )

    sprite_layout: str = Field(
        default="vertical",
        description="Default sheet layout: vertical or horizontal",
    )

    # Compilation configuration
    output_style: str = Field(
        default="nested",
        description="CSS output style: nested, expanded, compact or compressed",
    )

    source_comments: bool = Field(
        default=False,
        description="Emit source line comments in the compiled CSS",
    )

    custom_functions: List[str] = Field(
        default_factory=list,
        description="Custom function signatures to recognize, e.g. 'foo($bar, $baz)'",
    )

    workers: int = Field(
        default=1,
        ge=1,
        description="Independent top-level files compiled in parallel",
    )

    @field_validator("output_style")
    @classmethod
    def outputStyle_check(cls, value: str) -> str:
        if value not in OUTPUT_STYLES:
            raise ValueError(f"output_style must be one of {', '.join(OUTPUT_STYLES)}")
        return value

    @field_validator("sprite_layout")
    @classmethod
    def spriteLayout_check(cls, value: str) -> str:
        if value not in LAYOUTS:
            raise ValueError(f"sprite_layout must be one of {', '.join(LAYOUTS)}")
        return value


# Singleton instance - import this in your code
appsettings = AppSettings()
