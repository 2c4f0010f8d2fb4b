"""gprpipe user configuration.

This is the user-facing configuration file. Modify settings here to customize
the processing. Expert defaults live in gprpipe.schemas.param; command-line
options override everything set here.

Usage:
    gprpipe -f "survey/*.rad" --config scripts/user_config.py
    python scripts/run_gprpipe.py -f "survey/*.rad" --config scripts/user_config.py
"""

CONFIG = {
    # ========================================================================
    # READER
    # ========================================================================
    "VELOCITY": 0.168,          # Medium velocity in m/ns (0.168 = ice)
    "COR": None,                # Malå .cor file (None = next to each .rad)
    "OVERRIDE_ANTENNA_MHZ": None,

    # ========================================================================
    # GEOLOCATION
    # ========================================================================
    "CRS": None,                # e.g. "EPSG:32633" (None = UTM zone of first trace)
    "DEM": None,                # GeoTIFF used to sample trace elevations

    # ========================================================================
    # PROCESSING
    # ========================================================================
    "PROFILE": "default",       # "default", "default_with_topo" or None
    # "STEPS": "dewow(5),bandpass(50 400),auto_gain(100)",  # instead of PROFILE

    # ========================================================================
    # MERGE & OUTPUT
    # ========================================================================
    "MERGE": "10 min",          # Merge files recorded less than this apart
    "OUTPUT": None,             # Output file or directory (None = next to input)
    "TRACK": True,              # Write <stem>_track.csv
    "RENDER": False,            # Write a JPEG of each radargram

    # ========================================================================
    # BATCH & LOGGING
    # ========================================================================
    "MAX_WORKERS": 4,
    "ON_ERROR": "continue",     # "continue" or "abort"
    "LOG_LEVEL": "INFO",

    # Advanced users can override nested sections directly:
    # "render_config": {"dpi": 300, "cmap": "seismic", "output_format": "png"},
    # "export": {"compression_level": 6},
    # "logging": {"file": "logs/gprpipe.log"},
}
