"""Shared FastAPI dependencies for routes."""

from .._lifecycle import LifecycleManager


def get_manager() -> LifecycleManager:
    """Dependency placeholder — overridden by app factory."""
    raise RuntimeError("LifecycleManager not initialized")
