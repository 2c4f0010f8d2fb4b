"""`gprpipe` - Ground penetrating radar processing pipeline.

Subpackages:
- core: Radargram data model and error taxonomy
- formats: Malå and pulseEKKO decoders
- geo: Reprojection and DEM height sampling
- filters: Filter registry, profiles and the filter pipeline
- pipeline: Per-file processor, batch orchestrator and merger
- io: NetCDF and track export
- visualization: Radargram rendering
"""

__version__ = "0.1.0"
