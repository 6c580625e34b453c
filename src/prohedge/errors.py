"""Engine error taxonomy.

- InvalidInput: a value failed validation at the input boundary.
- IllegalMutation: the value is fine but the operation's state forbids the edit.

An exhausted chain is not an error; it is the CONCLUDED_ABANDONED state.
"""

from __future__ import annotations


class HedgeEngineError(Exception):
    """Base class for errors raised by the hedge engine."""


class InvalidInput(HedgeEngineError, ValueError):
    """Rejected input (odds, stake, commission, extraction, leg position)."""


class IllegalMutation(HedgeEngineError):
    """Edit refused by the current state of the operation or leg."""
