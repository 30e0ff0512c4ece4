"""Decorators for tracing circulation and catalog operations."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire
from pydantic import BaseModel


def trace_operation(operation: str, category: str = "circulation"):
    """Wrap a repository method in a Logfire span.

    Scalar arguments are recorded as ``input.*`` span attributes. Pydantic
    models passed positionally (request schemas) are flattened into their
    scalar fields; the first positional argument is taken to be ``self``.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with logfire.span(
                f"{category}.{operation}",
                operation=operation,
                category=category,
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", _collect_inputs(args[1:], kwargs))

                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("operation.success", False)
                    span.set_attribute("operation.error", type(e).__name__)
                    raise

                span.set_attribute("operation.success", True)
                span.set_attribute(
                    "operation.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                return result

        return wrapper

    return decorator


def _collect_inputs(args: tuple, kwargs: dict) -> dict[str, Any]:
    inputs: dict[str, Any] = {}
    for value in (*args, *kwargs.values()):
        if isinstance(value, BaseModel):
            inputs.update(value.model_dump())
    for key, value in kwargs.items():
        if not isinstance(value, BaseModel):
            inputs[key] = value
    return inputs


def _add_attributes(span, prefix: str, data: dict) -> None:
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)
