"""Configuration module for the Cloakworks services."""
from .settings import ServiceConfig, load_settings

__all__ = ["ServiceConfig", "load_settings"]
