"""Merge stage contract."""

from typing import Sequence

from gprpipe.contracts.base import require
from gprpipe.core.radargram import Radargram


def assert_start_ordered(radargrams: Sequence[Radargram]) -> None:
    """Enforce that merge input is ordered by increasing start time.

    Raises
    ------
    ContractViolation
        If two consecutive radargrams are out of order
    """
    for i in range(1, len(radargrams)):
        require(
            radargrams[i].start_time >= radargrams[i - 1].start_time,
            f"Merge contract violated: input {i} ({radargrams[i].source}) starts before "
            f"input {i - 1} ({radargrams[i - 1].source})"
        )
