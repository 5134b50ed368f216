"""Tool invocation pipeline."""

from .dispatcher import Dispatcher, Invocation, InvocationState

__all__ = ["Dispatcher", "Invocation", "InvocationState"]
