"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and immutable.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from datetime import timedelta
from typing import Literal, Optional
from pydantic import ConfigDict, Field, model_validator
from gprpipe.schemas.base import GprBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalReaderConfig(GprBaseModel):
    """Runtime reader configuration."""
    medium_velocity: float = Field(gt=0, le=0.3)
    cor_path: Optional[str]
    override_antenna_mhz: Optional[float]


class InternalGeolocationConfig(GprBaseModel):
    """Runtime geolocation configuration."""
    crs: Optional[str]
    dem_path: Optional[str]


class InternalProcessingConfig(GprBaseModel):
    """Runtime filter chain selection."""
    profile: Optional[Literal["default", "default_with_topo"]]
    steps: list[str]

    @model_validator(mode="after")
    def profile_or_steps(self):
        if self.profile is not None and self.steps:
            raise ValueError("Give either a processing profile or explicit steps, not both")
        return self


class InternalMergeConfig(GprBaseModel):
    """Runtime merge configuration."""
    threshold: Optional[timedelta]


class InternalExportConfig(GprBaseModel):
    """Runtime export configuration."""
    enabled: bool
    output_path: Optional[str]
    compression_level: int = Field(ge=0, le=9)
    track: bool
    track_path: Optional[str]


class InternalRenderConfig(GprBaseModel):
    """Runtime rendering configuration."""
    enabled: bool
    path: Optional[str]
    output_format: Literal["jpg", "png"]
    dpi: int
    cmap: str
    clip_percentile: float


class InternalProcessorConfig(GprBaseModel):
    """Runtime batch processing configuration."""
    max_workers: int = Field(ge=1)
    on_error: Literal["continue", "abort"]


class InternalLoggingConfig(GprBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    file: Optional[str]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(GprBaseModel):
    """Authoritative runtime configuration.
    
    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.
    
    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:
    
        def __init__(self, config: InternalConfig):
            self.velocity = config.reader.medium_velocity  # NOT .get()
    """
    
    reader: InternalReaderConfig
    geolocation: InternalGeolocationConfig
    processing: InternalProcessingConfig
    merge: InternalMergeConfig
    export: InternalExportConfig
    render: InternalRenderConfig
    processor: InternalProcessorConfig
    logging: InternalLoggingConfig
    
    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
