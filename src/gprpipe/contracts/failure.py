"""Centralized failure policy for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing the caller to handle pipeline bugs uniformly.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """What the batch orchestrator does when a file fails.

    CONTINUE (default): Report the failure, keep processing the other files
    ABORT: Report the failure, merge and export nothing
    """
    CONTINUE = "continue"
    ABORT = "abort"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad input data. It means a
    stage did not produce the invariants it promised.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - GPRError: Bad or unsupported input data (format, CRS, filter, merge)
    - ContractViolation: Pipeline bug (programmer error)
    """
    pass
