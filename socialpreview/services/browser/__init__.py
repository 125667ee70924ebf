"""Browser lifecycle and page-state helpers."""

from .playwright_flow import PlaywrightFlow
from .signals import race_signals

__all__ = ["PlaywrightFlow", "race_signals"]
