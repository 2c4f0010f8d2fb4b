"""Pipeline contracts - fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when a stage does not produce its
promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Typed GPRErrors report bad input data
"""

from gprpipe.contracts.failure import ContractViolation, FailurePolicy
from gprpipe.contracts.base import require
from gprpipe.contracts.radargram import assert_radargram
from gprpipe.contracts.merge import assert_start_ordered

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "require",
    "assert_radargram",
    "assert_start_ordered",
]
