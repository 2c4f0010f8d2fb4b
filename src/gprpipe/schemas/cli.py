"""CLIConfig: Command-line operational overrides.

Configuration for the parameters that commonly change between runs:
velocity, processing chain, merge threshold, output paths, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from datetime import timedelta
from typing import Literal, Optional
from pydantic import field_validator, model_validator
from gprpipe.schemas.base import GprBaseModel
from gprpipe.schemas._coerce import parse_duration, split_steps
from gprpipe.schemas.user import processing_overrides


class CLIConfig(GprBaseModel):
    """Command-line configuration overrides.
    
    Operational-only settings that override user and param configs.
    Highest priority in config resolution.
    
    Notes
    -----
    ``quiet`` lowers verbosity to WARNING unless an explicit log_level is
    given (schema responsibility, not runtime).
    
    Usage
    -----
        cli_cfg = CLIConfig(
            velocity=0.1,
            profile="default",
            merge="10 min",
            output="/scratch/gpr_out",
        )
        
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """
    
    velocity: Optional[float] = None
    cor: Optional[str] = None
    override_antenna_mhz: Optional[float] = None
    dem: Optional[str] = None
    crs: Optional[str] = None
    profile: Optional[Literal["default", "default_with_topo"]] = None
    steps: Optional[list[str]] = None
    merge: Optional[timedelta] = None
    output: Optional[str] = None
    no_export: bool = False
    track: Optional[bool] = None
    track_path: Optional[str] = None
    render: Optional[bool] = None
    render_path: Optional[str] = None
    max_workers: Optional[int] = None
    on_error: Optional[Literal["continue", "abort"]] = None
    quiet: bool = False
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

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
    
    @model_validator(mode="after")
    def quiet_lowers_verbosity(self):
        """Quiet mode means WARNING unless a level was given explicitly."""
        if self.quiet and self.log_level is None:
            self.log_level = "WARNING"
        return self
    
    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.
        
        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}
        
        reader = {}
        if self.velocity is not None:
            reader["medium_velocity"] = self.velocity
        if self.cor is not None:
            reader["cor_path"] = self.cor
        if self.override_antenna_mhz is not None:
            reader["override_antenna_mhz"] = self.override_antenna_mhz
        if reader:
            overrides["reader"] = reader
        
        geolocation = {}
        if self.dem is not None:
            geolocation["dem_path"] = self.dem
        if self.crs is not None:
            geolocation["crs"] = self.crs
        if geolocation:
            overrides["geolocation"] = geolocation
        
        processing = processing_overrides(self.profile, self.steps)
        if processing:
            overrides["processing"] = processing
        
        if self.merge is not None:
            overrides["merge"] = {"threshold": self.merge}
        
        export = {}
        if self.output is not None:
            export["output_path"] = self.output
        if self.no_export:
            export["enabled"] = False
        if self.track is not None:
            export["track"] = self.track
        if self.track_path is not None:
            export["track"] = True
            export["track_path"] = self.track_path
        if export:
            overrides["export"] = export
        
        render = {}
        if self.render is not None:
            render["enabled"] = self.render
        if self.render_path is not None:
            render["enabled"] = True
            render["path"] = self.render_path
        if render:
            overrides["render"] = render
        
        processor = {}
        if self.max_workers is not None:
            processor["max_workers"] = self.max_workers
        if self.on_error is not None:
            processor["on_error"] = self.on_error
        if processor:
            overrides["processor"] = processor
        
        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}
        
        return overrides
