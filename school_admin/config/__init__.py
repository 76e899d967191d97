"""Configuration module for the school admin provisioning service."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
