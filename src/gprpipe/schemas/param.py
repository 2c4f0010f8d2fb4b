"""ParamConfig: Expert defaults for the gprpipe pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

import os
from datetime import timedelta
from typing import Literal, Optional
from pydantic import Field, field_validator, model_validator
from gprpipe.schemas.base import GprBaseModel
from gprpipe.schemas._coerce import parse_duration, split_steps


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ReaderConfig(GprBaseModel):
    """Raw file reader configuration."""
    medium_velocity: float = Field(0.168, gt=0, le=0.3, description="Wave velocity in m/ns (ice: 0.168)")
    cor_path: Optional[str] = Field(None, description="Explicit Malå .cor file (searched automatically otherwise)")
    override_antenna_mhz: Optional[float] = Field(None, gt=0)


class GeolocationConfig(GprBaseModel):
    """Coordinate reprojection and DEM configuration."""
    crs: Optional[str] = Field(None, description="Target CRS; None selects the WGS84 UTM zone of the track")
    dem_path: Optional[str] = None


class ProcessingConfig(GprBaseModel):
    """Filter chain selection. A profile and explicit steps are exclusive."""
    profile: Optional[Literal["default", "default_with_topo"]] = None
    steps: list[str] = Field(default_factory=list)

    @field_validator("steps", mode="before")
    @classmethod
    def coerce_steps(cls, v):
        """Accept a comma separated string."""
        return split_steps(v)

    @model_validator(mode="after")
    def profile_or_steps(self):
        if self.profile is not None and self.steps:
            raise ValueError("Give either a processing profile or explicit steps, not both")
        return self


class MergeConfig(GprBaseModel):
    """Batch merge configuration."""
    threshold: Optional[timedelta] = Field(None, description="Maximum gap between merged acquisitions")

    @field_validator("threshold", mode="before")
    @classmethod
    def coerce_threshold(cls, v):
        """Allow human readable durations like '10 min'."""
        return parse_duration(v)


class ExportConfig(GprBaseModel):
    """NetCDF and track export configuration."""
    enabled: bool = True
    output_path: Optional[str] = None
    compression_level: int = Field(4, ge=0, le=9)
    track: bool = False
    track_path: Optional[str] = None


class RenderConfig(GprBaseModel):
    """Radargram image rendering."""
    enabled: bool = False
    path: Optional[str] = None
    output_format: Literal["jpg", "png"] = "jpg"
    dpi: int = Field(150, ge=50)
    cmap: str = "Greys"
    clip_percentile: float = Field(1.0, ge=0, lt=50)


class ProcessorConfig(GprBaseModel):
    """Batch processing configuration."""
    max_workers: int = Field(default_factory=lambda: os.cpu_count() or 1, ge=1)
    on_error: Literal["continue", "abort"] = "continue"


class LoggingConfig(GprBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(GprBaseModel):
    """Expert configuration with complete defaults.

    Usage
    -----
        param = ParamConfig()
        internal = resolve_config(param, user_cfg, cli_cfg)
    """
    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    geolocation: GeolocationConfig = Field(default_factory=GeolocationConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
