"""Configuration management for secdedup."""

from .loader import Config, load_config, save_config
from .models import ConfigModel, DetectionConfig, LLMConfig, PostgresConfig, SimilarityWeights

__all__ = [
    "Config",
    "ConfigModel",
    "DetectionConfig",
    "LLMConfig",
    "PostgresConfig",
    "SimilarityWeights",
    "load_config",
    "save_config",
]
