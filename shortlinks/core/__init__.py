"""Core module for the shortlinks service."""

from shortlinks.core.config import settings

__all__ = ["settings"]
