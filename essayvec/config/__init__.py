"""Configuration module -- exports Settings and load_pipeline_config."""

from essayvec.config.loader import load_pipeline_config
from essayvec.config.settings import Settings

__all__ = ["Settings", "load_pipeline_config"]
