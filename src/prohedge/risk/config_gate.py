"""Configuration gate: top-level settings freeze once any leg resolves.

Chain kind, currency, initial stake and commission feed every resolved
leg's frozen history, so they can only change while the operation is
still being configured.
"""

from __future__ import annotations

import logging

from prohedge.errors import IllegalMutation
from prohedge.models.operation import Operation

logger = logging.getLogger(__name__)

GATED_FIELDS = ("chain_kind", "num_legs", "currency", "initial_stake", "commission_rate")


def can_mutate_config(operation: Operation) -> bool:
    """True iff no leg has reached a RESOLVED_* state."""
    return not operation.any_resolved


def ensure_config_mutable(operation: Operation, field_name: str) -> None:
    """Refuse a configuration change after the first confirmation.

    Raises:
        ValueError: field_name is not a gated configuration field.
        IllegalMutation: at least one leg is resolved.
    """
    if field_name not in GATED_FIELDS:
        raise ValueError(f"{field_name!r} is not a gated field: {', '.join(GATED_FIELDS)}")
    if can_mutate_config(operation):
        return
    reason = (
        f"Cannot change {field_name}: operation {operation.operation_id} "
        f"already has {len(operation.resolved_legs)} resolved leg(s); reset first"
    )
    logger.warning("Config rejection: %s", reason)
    raise IllegalMutation(reason)
