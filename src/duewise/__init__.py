"""DueWise loan amortization, payoff planning and payment reminders."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .context import create_app_context

__all__ = ["BaseConfig", "DevConfig", "create_app_context"]
