"""Configuration module for the permission grant service."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
