"""Core configuration for AuthGate."""

from .config import AuthGateConfig

__all__ = ["AuthGateConfig"]
