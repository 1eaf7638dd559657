"""
Hook specification types for validators and lifecycle callbacks.

A hook is registered either by method name or as a callable. The two are
kept as distinct variants of a tagged union; ``as_hook`` is the only place a
registration target is turned into a hook, and it rejects anything else.
"""

from collections.abc import Callable
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CallbackEvent(str, Enum):
    """Lifecycle events a record type can hook into."""

    BEFORE_SAVE = "before_save"
    AFTER_SAVE = "after_save"
    BEFORE_CREATE = "before_create"
    AFTER_CREATE = "after_create"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"

    @property
    def is_before(self) -> bool:
        """before_* callbacks may cancel the operation."""
        return self.value.startswith("before_")


class MethodHook(BaseModel):
    """Hook resolved by method name on the record instance."""

    kind: Literal["method"] = "method"
    name: str = Field(description="Instance method name")

    model_config = ConfigDict(frozen=True)

    def resolve(self, record: Any) -> Callable[..., Any]:
        """Look up the bound method on ``record``."""
        method = getattr(type(record), self.name, None)
        if method is None or not callable(method):
            raise TypeError(f"{type(record).__name__} has no method '{self.name}'")
        return getattr(record, self.name)

    def invoke(self, record: Any, *args: Any) -> Any:
        return self.resolve(record)(*args)


class CallableHook(BaseModel):
    """Hook given as a plain function; receives the record as first argument."""

    kind: Literal["callable"] = "callable"
    func: Callable[..., Any] = Field(description="Function called with the record")

    model_config = ConfigDict(frozen=True)

    def invoke(self, record: Any, *args: Any) -> Any:
        return self.func(record, *args)


Hook = Annotated[MethodHook | CallableHook, Field(discriminator="kind")]


def as_hook(target: Any) -> MethodHook | CallableHook:
    """
    Turn a registration target into a hook variant.

    Args:
        target: Method name (str), an existing hook, or a callable

    Returns:
        MethodHook or CallableHook

    Raises:
        TypeError: If target is neither a string nor callable
    """
    if isinstance(target, (MethodHook, CallableHook)):
        return target
    if isinstance(target, str):
        if not target.isidentifier():
            raise TypeError(f"Hook method name '{target}' is not an identifier")
        return MethodHook(name=target)
    if callable(target):
        return CallableHook(func=target)
    raise TypeError(
        f"Hook must be a method name or a callable, got {type(target).__name__}"
    )


class ValidatorSpec(BaseModel):
    """
    Field validation rule.

    The hook is called with ``(field, value)`` (plus the record for callables)
    and returns None/True when valid, False when invalid, or an error message.
    """

    field: str = Field(description="Attribute being validated")
    hook: Hook = Field(description="Rule implementation")
    message: str | None = Field(default=None, description="Message used when the rule returns False")

    model_config = ConfigDict(frozen=True)


class CallbackSpec(BaseModel):
    """Lifecycle callback registration."""

    event: CallbackEvent
    hook: Hook

    model_config = ConfigDict(frozen=True)
