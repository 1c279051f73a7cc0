"""Unwrapping of (T, Z, H, W) phase stacks."""

from qualityphase.stack.driver import OutputType, StackDriver, convert_result

__all__ = [
    "OutputType",
    "StackDriver",
    "convert_result",
]
