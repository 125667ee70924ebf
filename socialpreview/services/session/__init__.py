"""Persisted login state for the target site."""

from .bootstrap import BootstrapResult, SessionBootstrap
from .store import SessionStore

__all__ = ["BootstrapResult", "SessionBootstrap", "SessionStore"]
