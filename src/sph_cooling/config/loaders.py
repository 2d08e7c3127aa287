"""
Configuration loaders for YAML and JSON files.

Cooling configurations are usually written as nested sections (tables,
physics, solver, floors, misc); these are flattened onto CoolingConfig
fields before validation.
"""

from typing import Any, Dict, Union
from pathlib import Path
import json

import yaml
from pydantic import ValidationError

from sph_cooling.core.config import CoolingConfig

# Nested section -> {key in file: CoolingConfig field}
FIELD_MAPPINGS = {
    'tables': {
        'uv_background': 'uv_background',
        'uv_table': 'uv_table_path',
        'uv_table_path': 'uv_table_path',
        'uv_amplitude': 'uv_amplitude',
        'metal_tables': 'metal_table_dir',
        'metal_table_dir': 'metal_table_dir',
    },
    'physics': {
        'channels': 'channels',
        'shielding': 'shielding_model',
        'shielding_model': 'shielding_model',
        'hydrogen_mass_fraction': 'hydrogen_mass_fraction',
        'gamma': 'gamma',
        'cosmological': 'cosmological',
        'redshift': 'redshift',
        'dust_temperature': 'dust_temperature',
        'agn_compton_temperature': 'agn_compton_temperature',
    },
    'solver': {
        'operator_split': 'operator_split',
        'max_iterations': 'max_iterations',
        'max_bracket_iterations': 'max_bracket_iterations',
    },
    'floors': {
        'min_temperature': 'min_gas_temperature',
        'min_gas_temperature': 'min_gas_temperature',
        'min_specific_energy': 'min_specific_energy',
    },
    'misc': {
        'verbose': 'verbose',
    },
}


def load_config(filename: Union[str, Path], **overrides) -> CoolingConfig:
    """
    Load a cooling configuration from a YAML or JSON file.

    Parameters
    ----------
    filename : str or Path
        Path to configuration file (.yaml, .yml, or .json)
    **overrides : keyword arguments
        Override specific config values (e.g., redshift=2.0, verbose=False)

    Returns
    -------
    config : CoolingConfig
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If configuration file does not exist
    ValueError
        If file format is unsupported or config is invalid

    Examples
    --------
    >>> config = load_config("cooling.yaml")
    >>> config = load_config("cooling.yaml", redshift=3.0, uv_background="power_law")
    """
    filepath = Path(filename)

    if not filepath.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        config_dict = load_yaml(filepath)
    elif suffix == '.json':
        config_dict = load_json(filepath)
    else:
        raise ValueError(
            f"Unsupported config file format: {suffix}. "
            "Use .yaml, .yml, or .json"
        )

    flat_config = flatten_config(config_dict)
    flat_config.update(overrides)

    try:
        config = CoolingConfig(**flat_config)
    except ValidationError as e:
        raise ValueError(
            f"Configuration validation failed for {filepath}: {e}"
        ) from e

    return config


def load_yaml(filepath: Path) -> Dict[str, Any]:
    """Load a YAML file; an empty file gives an empty dict."""
    with open(filepath, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        config_dict = {}

    return config_dict


def load_json(filepath: Path) -> Dict[str, Any]:
    """Load a JSON file."""
    with open(filepath, 'r') as f:
        return json.load(f)


def flatten_config(config_dict: Dict[str, Any], parent_key: str = '') -> Dict[str, Any]:
    """
    Flatten a nested configuration dictionary.

    Converts nested structures like:
        {'floors': {'min_temperature': 10.0}, 'tables': {'uv_table': 'TREECOOL'}}
    to:
        {'min_gas_temperature': 10.0, 'uv_table_path': 'TREECOOL'}

    Unmapped keys inside a known section are passed through unchanged;
    unknown nested sections are flattened recursively.

    Parameters
    ----------
    config_dict : Dict[str, Any]
        Nested configuration dictionary
    parent_key : str
        Parent key for recursion

    Returns
    -------
    flat_dict : Dict[str, Any]
        Flattened configuration dictionary
    """
    flat = {}

    for key, value in config_dict.items():
        if key in FIELD_MAPPINGS and isinstance(value, dict):
            for subkey, subvalue in value.items():
                flat[FIELD_MAPPINGS[key].get(subkey, subkey)] = subvalue
        elif isinstance(value, dict):
            flat.update(flatten_config(value, parent_key=key))
        else:
            flat[key] = value

    return flat


def save_config(config: CoolingConfig, filename: Union[str, Path]) -> None:
    """
    Save a CoolingConfig as nested YAML or JSON.

    Parameters
    ----------
    config : CoolingConfig
        Configuration to save
    filename : str or Path
        Output file path (.yaml, .yml or .json)
    """
    filepath = Path(filename)
    config_dict = config.model_dump()

    organized = {
        'tables': {
            'uv_background': config_dict['uv_background'],
            'uv_table_path': config_dict['uv_table_path'],
            'uv_amplitude': config_dict['uv_amplitude'],
            'metal_table_dir': config_dict['metal_table_dir'],
        },
        'physics': {
            'channels': config_dict['channels'],
            'shielding_model': config_dict['shielding_model'],
            'hydrogen_mass_fraction': config_dict['hydrogen_mass_fraction'],
            'gamma': config_dict['gamma'],
            'cosmological': config_dict['cosmological'],
            'redshift': config_dict['redshift'],
            'dust_temperature': config_dict['dust_temperature'],
            'agn_compton_temperature': config_dict['agn_compton_temperature'],
        },
        'solver': {
            'operator_split': config_dict['operator_split'],
            'max_iterations': config_dict['max_iterations'],
            'max_bracket_iterations': config_dict['max_bracket_iterations'],
        },
        'floors': {
            'min_gas_temperature': config_dict['min_gas_temperature'],
            'min_specific_energy': config_dict['min_specific_energy'],
        },
        'misc': {
            'verbose': config_dict['verbose'],
        },
    }

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        with open(filepath, 'w') as f:
            yaml.dump(organized, f, default_flow_style=False, sort_keys=False)
    elif suffix == '.json':
        with open(filepath, 'w') as f:
            json.dump(organized, f, indent=2)
    else:
        raise ValueError(f"Unsupported output format: {suffix}. Use .yaml or .json")


def config_from_dict(config_dict: Dict[str, Any], **overrides) -> CoolingConfig:
    """
    Create a CoolingConfig from a (possibly nested) dictionary.

    Parameters
    ----------
    config_dict : Dict[str, Any]
        Configuration dictionary
    **overrides : keyword arguments
        Values applied after flattening

    Returns
    -------
    config : CoolingConfig
        Validated configuration
    """
    flat = flatten_config(config_dict)
    flat.update(overrides)
    return CoolingConfig(**flat)
