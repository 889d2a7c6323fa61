"""
Module: approval_engines
Responsibility:
    Package entrypoint that re-exports the pure calculation engines used
    by the workflow service and the runtime services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import approval_kernel.domain (and sibling engine modules).
    MUST NOT import approval_services.

Invariants enforced:
    - Purity: engines never read the clock, the database, or files.
      Thresholds arrive as a compiled registry argument.
    - Decimal-only arithmetic for every threshold comparison.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from approval_engines import calculate_priority, can_auto_approve
    from approval_engines.messages import new_request_title
"""

from approval_engines.auto_approval import can_auto_approve, evaluate_auto_approval
from approval_engines.priority import calculate_priority

__all__ = [
    "calculate_priority",
    "can_auto_approve",
    "evaluate_auto_approval",
]
