from typing import Any, Literal

from pydantic import BaseModel, Field

ImageFormat = Literal["png", "jpg", "svg", "pdf"]


class ImageProcessingOptions(BaseModel):
    """Options for resolving and optimizing rendered node images."""

    format: ImageFormat = "png"
    scale: float = Field(default=1.0, gt=0, le=4)
    batch_size: int = Field(default=50, ge=1, le=50)  # upstream cap per request
    batch_delay_seconds: float = Field(default=1.0, ge=0)
    generate_placeholders: bool = True
    max_width: int = Field(default=1920, gt=0)
    max_height: int = Field(default=1080, gt=0)
    quality: int = Field(default=85, ge=1, le=100)
    inline_base64: bool = False
    max_concurrency: int = Field(default=8, ge=1)


class BatchProcessingOptions(BaseModel):
    """Request DTO for the document processing pipeline."""

    include_images: bool = False
    optimize_images: bool = False
    analyze_components: bool = False
    generate_css: bool = False
    css_include_variables: bool = False
    css_minify: bool = False
    css_class_prefix: str = ""
    max_concurrency: int = Field(default=3, ge=1)
    images: ImageProcessingOptions = Field(default_factory=ImageProcessingOptions)


class ProcessFilesRequest(BaseModel):
    """Request DTO for processing one or more design files."""

    file_keys: list[str] = Field(min_length=1)
    options: BatchProcessingOptions = Field(default_factory=BatchProcessingOptions)


class ProcessFilesResult(BaseModel):
    """Result DTO for the process-files use case."""

    processed: list[str]
    failed: dict[str, str] = {}  # file key -> error message
    duration_seconds: float
    results: list[dict[str, Any]] = []
    warnings: list[str] = []
