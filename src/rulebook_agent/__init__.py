"""Rulebook agent package."""

from .config import ModelTierConfig, RefreshConfig, UploadConfig

__all__ = ["ModelTierConfig", "RefreshConfig", "UploadConfig"]
