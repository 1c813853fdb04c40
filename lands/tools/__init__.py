"""Command handlers used by the console and any chat/command layer."""

from .handlers import LandCommandHandlers

__all__ = ["LandCommandHandlers"]
