"""
Validation and lifecycle callback execution.

Validation failures are business-rule results, not exceptions: they are
collected into a field-keyed mapping of messages.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from rivet_orm.specs.hooks import CallableHook, Hook, ValidatorSpec

if TYPE_CHECKING:
    from rivet_orm.runtime.record import Record


def run_validators(record: Record, validators: Iterable[ValidatorSpec]) -> dict[str, list[str]]:
    """
    Run field validators against a record.

    A rule returns None or True when the value is valid, False when it is
    not (the validator's message or a default is used), or a message string.

    Returns:
        Mapping of field name to error messages (empty when valid)
    """
    errors: dict[str, list[str]] = {}
    for spec in validators:
        value = record.get(spec.field)
        outcome = spec.hook.invoke(record, spec.field, value)

        if outcome is None or outcome is True:
            continue
        if outcome is False:
            message = spec.message or f"{spec.field} is invalid"
        else:
            message = str(outcome)
        errors.setdefault(spec.field, []).append(message)
    return errors


def run_callbacks(record: Record, hooks: Iterable[Hook], halt_on_false: bool = False) -> bool:
    """
    Run lifecycle callbacks in registration order.

    Args:
        record: Record the event concerns
        hooks: Callbacks registered for the event
        halt_on_false: Stop and report False when a callback returns False

    Returns:
        False if a callback halted the chain, True otherwise
    """
    for hook in hooks:
        outcome = hook.invoke(record)
        if halt_on_false and outcome is False:
            return False
    return True


def presence_rule(record: Record, field: str, value: Any) -> str | None:
    """Built-in rule: value must be set and not blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return f"{field} is required"
    return None


PRESENCE = CallableHook(func=presence_rule)
