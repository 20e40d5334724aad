"""Configuration module"""
from .settings import settings, get_settings

__all__ = ["settings", "get_settings"]
