"""Formal pipeline invariants.

This file documents what each stage MUST produce. Use it as a reviewer
anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "decode": [
        "data is 2-D (samples_per_trace, n_traces) with at least one trace",
        "timestamps are datetime64[ns], one per trace, non-decreasing",
        "distances has one value per trace",
        "positions are either None or (n_traces, 3) with finite x/y",
        "crs is set exactly when positions are present",
        "applied_filters is empty",
    ],

    "geolocate": [
        "All decode invariants",
        "positions (if present) are expressed in the target crs",
        "ungeolocated radargrams are returned unchanged",
    ],

    "filter": [
        "All decode invariants",
        "data is finite",
        "applied_filters grew by exactly one entry per applied filter",
    ],

    "merge": [
        "Input is ordered by increasing start time",
        "Members of one group share samples_per_trace and sample_interval",
        "Output group order equals input order",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "decode": "REQUIRED",
    "geolocate": "REQUIRED",   # May leave the radargram ungeolocated
    "filter": "OPTIONAL",      # Empty chain exports raw data
    "merge": "OPTIONAL",       # Only in batch mode with a merge threshold
}
