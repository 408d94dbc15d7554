"""Resolver settings."""

from stepbind.core.config.settings import ResolverSettings, load_settings

__all__ = ["ResolverSettings", "load_settings"]
