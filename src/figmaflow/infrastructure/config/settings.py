"""Pydantic settings for figmaflow.toml configuration."""

import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from ...application.dto.processing import BatchProcessingOptions, ImageProcessingOptions
from .environment import (
    ACCESS_TOKEN_ENV,
    API_BASE_URL_ENV,
    CONFIG_PATH_ENV,
    get_env,
    load_environment_variables,
)

DEFAULT_CONFIG_FILE = "figmaflow.toml"
DEFAULT_BASE_URL = "https://api.figma.com/v1"
MAX_IMAGE_BATCH_SIZE = 50


class ApiSettings(BaseModel):
    """REST API connection settings."""

    base_url: str = DEFAULT_BASE_URL
    token: str = ""
    rate_limit_per_minute: int = Field(default=60, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    cache_enabled: bool = True
    file_cache_ttl_seconds: float = Field(default=300.0, gt=0)

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable precedence (system env > .env > TOML)."""
        load_environment_variables()

        env_token = get_env(ACCESS_TOKEN_ENV)
        if env_token is not None:
            data["token"] = env_token

        env_base_url = get_env(API_BASE_URL_ENV)
        if env_base_url:
            data["base_url"] = env_base_url

        super().__init__(**data)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ImageSettings(BaseModel):
    """Image resolution and optimization settings."""

    format: Literal["png", "jpg", "svg", "pdf"] = "png"
    scale: float = Field(default=1.0, gt=0, le=4)
    batch_size: int = Field(default=MAX_IMAGE_BATCH_SIZE, ge=1)
    batch_delay_seconds: float = Field(default=1.0, ge=0)
    generate_placeholders: bool = True
    max_width: int = Field(default=1920, gt=0)
    max_height: int = Field(default=1080, gt=0)
    quality: int = Field(default=85, ge=1, le=100)
    inline_base64: bool = False
    max_concurrency: int = Field(default=8, ge=1)

    @field_validator("batch_size")
    @classmethod
    def cap_batch_size(cls, v: int) -> int:
        """The upstream images endpoint accepts at most 50 ids per request."""
        return min(v, MAX_IMAGE_BATCH_SIZE)


class PipelineSettings(BaseModel):
    """Which optional stages run by default."""

    max_concurrency: int = Field(default=3, ge=1)
    include_images: bool = False
    optimize_images: bool = False
    analyze_components: bool = False
    generate_css: bool = False
    css_include_variables: bool = False
    css_minify: bool = False
    css_class_prefix: str = ""


class CacheSettings(BaseModel):
    max_size: int = Field(default=100, ge=1)
    default_ttl_seconds: float = Field(default=300.0, gt=0)


class Settings(BaseModel):
    """Main settings loaded from figmaflow.toml."""

    api: ApiSettings = Field(default_factory=ApiSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @classmethod
    def from_toml(cls, toml_path: Path | str | None = None) -> "Settings":
        """
        Load settings from a TOML file with environment variable precedence.

        Args:
            toml_path: Path to the config file; defaults to ``$FIGMAFLOW_CONFIG``
                or ``figmaflow.toml`` in the current directory

        Returns:
            Settings instance (defaults when the file does not exist)
        """
        load_environment_variables()

        if toml_path is None:
            toml_path = get_env(CONFIG_PATH_ENV) or DEFAULT_CONFIG_FILE
        toml_path = Path(toml_path)

        if not toml_path.exists():
            return cls()

        with open(toml_path, "rb") as f:
            data = tomllib.load(f)

        return cls(
            api=ApiSettings(**data.get("api", {})),
            images=ImageSettings(**data.get("images", {})),
            pipeline=PipelineSettings(**data.get("pipeline", {})),
            cache=CacheSettings(**data.get("cache", {})),
        )

    def to_processing_options(self, **overrides: Any) -> BatchProcessingOptions:
        """
        Build pipeline options from the configured defaults.

        Args:
            **overrides: BatchProcessingOptions fields to override (None values are ignored)
        """
        values: dict[str, Any] = self.pipeline.model_dump()
        values["images"] = ImageProcessingOptions(**self.images.model_dump())
        values.update({k: v for k, v in overrides.items() if v is not None})
        return BatchProcessingOptions(**values)
