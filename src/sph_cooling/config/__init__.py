"""
Configuration module: YAML/JSON loading of cooling configurations.
"""

from sph_cooling.config.loaders import (
    load_config,
    save_config,
    config_from_dict,
    flatten_config,
)

__all__ = [
    'load_config',
    'save_config',
    'config_from_dict',
    'flatten_config',
]
