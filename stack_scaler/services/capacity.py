from __future__ import annotations

from typing import Optional

from stack_scaler.models.session import DEFAULT_CAPACITY, Capacity, SessionConfig


def capacity_for(session: SessionConfig, environment: Optional[str]) -> Capacity:
    """Target capacity for an environment: the default with its override patched on top."""

    if environment is None:
        return DEFAULT_CAPACITY
    override = session.scaling.get(environment)
    if override is None:
        return DEFAULT_CAPACITY
    return override.apply_to(DEFAULT_CAPACITY)
