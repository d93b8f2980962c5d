"""Configuration primitives for the session keeper."""

from .settings import KeeperSettings, get_settings

__all__ = ["KeeperSettings", "get_settings"]
