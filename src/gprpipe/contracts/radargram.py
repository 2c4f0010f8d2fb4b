"""Radargram stage-boundary contract.

Enforces the invariants every stage (decode, geolocate, each filter, merge)
must hand to the next one.
"""

import numpy as np

from gprpipe.contracts.base import require
from gprpipe.core.radargram import Radargram


def assert_radargram(rg: Radargram, stage: str = "pipeline") -> None:
    """Enforce the radargram contract.

    Parameters
    ----------
    rg : Radargram
        Output of a pipeline stage.

    stage : str
        Stage name used in the violation message.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    prefix = f"Radargram contract violated after {stage}"

    require(
        rg.data.ndim == 2,
        f"{prefix}: data has {rg.data.ndim} dims, expected 2 (samples, traces)"
    )
    require(rg.n_traces > 0, f"{prefix}: no traces")
    require(rg.samples_per_trace > 0, f"{prefix}: traces have no samples")
    require(
        rg.sample_interval > 0 and np.isfinite(rg.sample_interval),
        f"{prefix}: invalid sample interval {rg.sample_interval}"
    )
    require(
        len(rg.timestamps) == rg.n_traces,
        f"{prefix}: {len(rg.timestamps)} timestamps for {rg.n_traces} traces"
    )
    require(
        len(rg.distances) == rg.n_traces,
        f"{prefix}: {len(rg.distances)} distances for {rg.n_traces} traces"
    )
    require(
        not np.isnat(rg.timestamps).any(),
        f"{prefix}: timestamps contain NaT"
    )
    require(
        bool(np.all(rg.timestamps[1:] >= rg.timestamps[:-1])),
        f"{prefix}: timestamps are not non-decreasing"
    )

    if rg.positions is None:
        require(rg.crs is None, f"{prefix}: crs '{rg.crs}' set without positions")
        return

    require(
        rg.positions.shape == (rg.n_traces, 3),
        f"{prefix}: positions shape {rg.positions.shape}, expected ({rg.n_traces}, 3)"
    )
    require(
        bool(np.isfinite(rg.positions[:, :2]).all()),
        f"{prefix}: partial geolocation (non-finite x/y)"
    )
    require(rg.crs is not None, f"{prefix}: positions present without a crs")
