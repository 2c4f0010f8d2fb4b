"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., VELOCITY → reader.medium_velocity,
MERGE → merge.threshold).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, integers where floats are expected,
human readable durations, and comma separated step lists.
"""

from datetime import timedelta
from typing import Literal, Optional
from pydantic import Field, field_validator
from gprpipe.schemas.base import GprBaseModel
from gprpipe.schemas._coerce import parse_duration, split_steps


def processing_overrides(profile: Optional[str], steps: Optional[list[str]]) -> dict:
    """Build a processing override where a profile and explicit steps replace each other.

    Giving both is passed through so that validation rejects it.
    """
    section = {}
    if profile is not None:
        section["profile"] = profile
        if steps is None:
            section["steps"] = []
    if steps is not None:
        section["steps"] = list(steps)
        if profile is None:
            section["profile"] = None
    return section


class UserReaderConfig(GprBaseModel):
    """User-facing reader config."""
    medium_velocity: Optional[float] = None
    cor_path: Optional[str] = None
    override_antenna_mhz: Optional[float] = None

    @field_validator("medium_velocity", "override_antenna_mhz", mode="before")
    @classmethod
    def coerce_float(cls, v):
        """Accept int or float."""
        if v is not None:
            return float(v)
        return v


class UserGeolocationConfig(GprBaseModel):
    """User-facing geolocation config."""
    crs: Optional[str] = None
    dem_path: Optional[str] = None


class UserProcessingConfig(GprBaseModel):
    """User-facing processing config."""
    profile: Optional[str] = None
    steps: Optional[list[str]] = None

    @field_validator("profile", mode="before")
    @classmethod
    def normalize_profile(cls, v):
        """Normalize profile names to lowercase with underscores."""
        if isinstance(v, str):
            return v.lower().strip().replace("-", "_")
        return v

    @field_validator("steps", mode="before")
    @classmethod
    def coerce_steps(cls, v):
        return split_steps(v)


class UserMergeConfig(GprBaseModel):
    """User-facing merge config."""
    threshold: Optional[timedelta] = None

    @field_validator("threshold", mode="before")
    @classmethod
    def coerce_threshold(cls, v):
        return parse_duration(v)


class UserExportConfig(GprBaseModel):
    """User-facing export config."""
    enabled: Optional[bool] = None
    output_path: Optional[str] = None
    compression_level: Optional[int] = None
    track: Optional[bool] = None
    track_path: Optional[str] = None


class UserRenderConfig(GprBaseModel):
    """User-facing render config."""
    enabled: Optional[bool] = None
    path: Optional[str] = None
    output_format: Optional[str] = None
    dpi: Optional[int] = None
    cmap: Optional[str] = None
    clip_percentile: Optional[float] = None


class UserProcessorConfig(GprBaseModel):
    """User-facing batch processing config."""
    max_workers: Optional[int] = None
    on_error: Optional[Literal["continue", "abort"]] = None


class UserLoggingConfig(GprBaseModel):
    """User-facing logging config."""
    level: Optional[str] = None
    file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v


class UserConfig(GprBaseModel):
    """User-facing configuration schema.
    
    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.
    
    This config is converted to internal overrides during resolution.
    
    Usage
    -----
        user_cfg = UserConfig(
            VELOCITY=0.1,
            PROFILE="default",
            MERGE="10 min",
            CRS="EPSG:32633",
        )
        
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """
    
    # Reader settings (flat aliases)
    velocity: Optional[float] = Field(None, alias="VELOCITY")
    cor_path: Optional[str] = Field(None, alias="COR")
    override_antenna_mhz: Optional[float] = Field(None, alias="OVERRIDE_ANTENNA_MHZ")
    
    # Geolocation settings (flat aliases)
    crs: Optional[str] = Field(None, alias="CRS")
    dem_path: Optional[str] = Field(None, alias="DEM")
    
    # Processing settings (flat aliases)
    profile: Optional[str] = Field(None, alias="PROFILE")
    steps: Optional[list[str]] = Field(None, alias="STEPS")
    
    # Merge / export / render (flat aliases)
    merge: Optional[timedelta] = Field(None, alias="MERGE")
    output: Optional[str] = Field(None, alias="OUTPUT")
    track: Optional[bool] = Field(None, alias="TRACK")
    render: Optional[bool] = Field(None, alias="RENDER")
    
    # Batch and logging (flat aliases)
    max_workers: Optional[int] = Field(None, alias="MAX_WORKERS")
    on_error: Optional[Literal["continue", "abort"]] = Field(None, alias="ON_ERROR")
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")
    
    # Nested overrides (advanced users)
    reader_section: Optional[UserReaderConfig] = Field(None, alias="reader")
    geolocation: Optional[UserGeolocationConfig] = None
    processing: Optional[UserProcessingConfig] = None
    merge_section: Optional[UserMergeConfig] = Field(None, alias="merge_config")
    export: Optional[UserExportConfig] = None
    render_section: Optional[UserRenderConfig] = Field(None, alias="render_config")
    processor: Optional[UserProcessorConfig] = None
    logging: Optional[UserLoggingConfig] = None
    
    model_config = GprBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("velocity", "override_antenna_mhz", mode="before")
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Accept int or float for numeric fields."""
        if v is not None:
            return float(v)
        return v

    @field_validator("profile", mode="before")
    @classmethod
    def normalize_profile(cls, v):
        if isinstance(v, str):
            return v.lower().strip().replace("-", "_")
        return v

    @field_validator("steps", mode="before")
    @classmethod
    def coerce_steps(cls, v):
        return split_steps(v)

    @field_validator("merge", mode="before")
    @classmethod
    def coerce_merge(cls, v):
        return parse_duration(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v
    
    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.
        
        Flat aliases are applied first; explicit nested sections win over them.
        
        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}
        
        reader = {}
        if self.velocity is not None:
            reader["medium_velocity"] = self.velocity
        if self.cor_path is not None:
            reader["cor_path"] = self.cor_path
        if self.override_antenna_mhz is not None:
            reader["override_antenna_mhz"] = self.override_antenna_mhz
        if self.reader_section is not None:
            reader.update(self.reader_section.model_dump(exclude_none=True))
        if reader:
            overrides["reader"] = reader
        
        geolocation = {}
        if self.crs is not None:
            geolocation["crs"] = self.crs
        if self.dem_path is not None:
            geolocation["dem_path"] = self.dem_path
        if self.geolocation is not None:
            geolocation.update(self.geolocation.model_dump(exclude_none=True))
        if geolocation:
            overrides["geolocation"] = geolocation
        
        profile, steps = self.profile, self.steps
        if self.processing is not None:
            if self.processing.profile is not None:
                profile = self.processing.profile
            if self.processing.steps is not None:
                steps = self.processing.steps
        processing = processing_overrides(profile, steps)
        if processing:
            overrides["processing"] = processing
        
        merge = {}
        if self.merge is not None:
            merge["threshold"] = self.merge
        if self.merge_section is not None:
            merge.update(self.merge_section.model_dump(exclude_none=True))
        if merge:
            overrides["merge"] = merge
        
        export = {}
        if self.output is not None:
            export["output_path"] = self.output
        if self.track is not None:
            export["track"] = self.track
        if self.export is not None:
            export.update(self.export.model_dump(exclude_none=True))
        if export:
            overrides["export"] = export
        
        render = {}
        if self.render is not None:
            render["enabled"] = self.render
        if self.render_section is not None:
            render.update(self.render_section.model_dump(exclude_none=True))
        if render:
            overrides["render"] = render
        
        processor = {}
        if self.max_workers is not None:
            processor["max_workers"] = self.max_workers
        if self.on_error is not None:
            processor["on_error"] = self.on_error
        if self.processor is not None:
            processor.update(self.processor.model_dump(exclude_none=True))
        if processor:
            overrides["processor"] = processor
        
        logging_cfg = {}
        if self.log_level is not None:
            logging_cfg["level"] = self.log_level
        if self.logging is not None:
            logging_cfg.update(self.logging.model_dump(exclude_none=True))
        if logging_cfg:
            overrides["logging"] = logging_cfg
        
        return overrides
