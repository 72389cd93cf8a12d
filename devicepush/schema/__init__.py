"""Schema package exports."""

from .devices import PushDevice

__all__ = ["PushDevice"]
