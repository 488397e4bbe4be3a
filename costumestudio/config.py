"""Configuration system for CostumeStudio.

This module handles configuration loading, merging, and persistence. Supports
JSON and YAML formats with profile-based overrides and CLI-based
modifications.

Usage:
    config, config_file = load_config(
        config_path='costumestudio.yaml',
        profile='hd',
        overrides={'generation.default_count': 2}
    )

Author:
    Jake Meador <jameador13@gmail.com>
"""

import contextlib
import copy
import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = [
    'DEFAULT_CONFIG',
    'merge_dicts',
    'find_config_file',
    'load_config_file',
    'save_config_file',
    'load_config',
    'parse_override_arg',
    'apply_key_path',
    'parse_set_string',
    'store_path',
    'generate_config',
]

logger = logging.getLogger('costumestudio')

CONFIG_NAMES = ('costumestudio.json', 'costumestudio.yaml')

DEFAULT_CONFIG = {
    'store': {
        'directory': '~/.costumestudio',
        'filename': 'state.json',
    },
    'generation': {
        'engine': 'openai',
        'chat_model': 'gpt-4',
        'image_model': 'dall-e-2',
        'size': '1024x1024',
        'default_count': 4,
    },
    'colors': {
        'top': '#ff0000',
        'bottom': '#0000ff',
    },
}


def merge_dicts(base: dict, override: dict) -> dict:
    """Recursively merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def find_config_file(custom_path: Optional[str] = None) -> Optional[Path]:
    """Find config file in order: custom, CWD costumestudio.{json,yaml}, package costumestudio.yaml."""
    if custom_path:
        path = Path(custom_path)
        if not path.exists():
            raise FileNotFoundError(f'Config file not found: {custom_path}')
        return path

    cwd = Path.cwd()
    for name in CONFIG_NAMES:
        if (candidate := cwd / name).exists():
            return candidate

    script_dir = Path(__file__).parent
    if (package_config := script_dir / 'costumestudio.yaml').exists():
        return package_config

    return None


def load_config_file(path: Path) -> dict:
    """Load config file (JSON or YAML)."""
    content = path.read_text(encoding='utf-8')

    if path.suffix in ['.json', '.JSON']:
        return json.loads(content)

    if path.suffix in ['.yaml', '.yml', '.YAML', '.YML']:
        return yaml.safe_load(content) or {}

    try:
        return yaml.safe_load(content) or {}
    except yaml.YAMLError:
        return json.loads(content)


def save_config_file(path: Path, config: dict) -> None:
    """Save config file (JSON or YAML)."""
    if path.suffix in ['.json', '.JSON']:
        content = json.dumps(config, indent=2)
    else:
        content = yaml.dump(config, default_flow_style=False, sort_keys=False)

    path.write_text(content, encoding='utf-8')


def load_config(
    config_path: Optional[str] = None,
    profile: Optional[str] = None,
    overrides: Optional[dict] = None,
    save_overrides: bool = False
) -> tuple[dict, Optional[Path]]:
    """Load configuration with optional profile and overrides."""
    config_file = find_config_file(config_path)

    if config_file:
        logger.info(f'Loading config: {config_file}')
        config = merge_dicts(copy.deepcopy(DEFAULT_CONFIG), load_config_file(config_file))
    else:
        logger.info('No config file found, using defaults')
        config = copy.deepcopy(DEFAULT_CONFIG)
        config_file = None

    if profile:
        if 'profiles' in config and profile in config['profiles']:
            logger.info(f'Loading profile: {profile}')
            profile_config = config['profiles'][profile]
            base_config = {k: v for k, v in config.items() if k != 'profiles'}
            config = merge_dicts(base_config, profile_config)
        else:
            logger.warning(f'Profile "{profile}" not found in config')

    if overrides:
        logger.debug(f'Applying overrides: {overrides}')
        config = merge_dicts(config, overrides)

        if save_overrides and config_file:
            logger.info(f'Saving overrides to: {config_file}')
            save_config_file(config_file, config)

    return config, config_file


def parse_override_arg(arg: str) -> tuple[str, Any]:
    """Parse config override argument (key.path=value)."""
    if '=' not in arg:
        raise ValueError(f'Invalid override format (expected key=value): {arg}')

    key_path, value = arg.split('=', 1)

    with contextlib.suppress(json.JSONDecodeError, ValueError):
        value = json.loads(value)

    return key_path, value


def apply_key_path(config: dict, key_path: str, value: Any) -> dict:
    """Apply value to nested key path."""
    keys = key_path.split('.')
    current = config

    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
    return config


def parse_set_string(set_string: str) -> dict[str, Any]:
    """Parse space-separated key.path=value pairs into a nested override dict.

    Shorthands: `count` for generation.default_count, `top`/`bottom` for
    the outfit colors.
    """
    shorthands = {
        'count': 'generation.default_count',
        'top': 'colors.top',
        'bottom': 'colors.bottom',
    }
    overrides = {}

    for pair in set_string.split():
        if '=' not in pair:
            continue

        key_path, value = parse_override_arg(pair)
        overrides = apply_key_path(overrides, shorthands.get(key_path, key_path), value)

    return overrides


def store_path(config: dict) -> Path:
    """Resolve the state file location from config."""
    store_config = config.get('store', {})
    directory = Path(store_config.get('directory', DEFAULT_CONFIG['store']['directory']))
    filename = store_config.get('filename', DEFAULT_CONFIG['store']['filename'])
    return directory.expanduser() / filename


def generate_config(target_dir: Path, force: bool = False) -> Path | None:
    """Write a default costumestudio.yaml into target_dir.

    Args:
        target_dir: Directory to write the config into.
        force: If True, overwrite an existing file.

    Returns:
        Path to the written config, or None if one already existed.
    """
    config_path = Path(target_dir) / 'costumestudio.yaml'

    if config_path.exists() and not force:
        logger.info(f'Config already exists: {config_path} (use --force to overwrite)')
        return None

    save_config_file(config_path, copy.deepcopy(DEFAULT_CONFIG))
    logger.info(f'Wrote default config: {config_path}')
    return config_path
