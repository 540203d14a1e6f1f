"""YAML configuration for dtoize.

Two kinds of files are read here:
- batch files listing the collections to convert (`dtoize batch`)
- an optional defaults file (dtoize.yaml, .dtoize.yaml, ...) in the working
  directory whose `output` section supplies defaults for single conversions
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

LANGUAGES = ('dart', 'python')
SERIALIZATION_METHODS = ('manual', 'json_serializable')

DEFAULT_CONFIG_FILES = [
    'dtoize.yaml',
    'dtoize.yml',
    '.dtoize.yaml',
    '.dtoize.yml',
]

DEFAULT_SAMPLE_SIZE = 20
DEFAULT_OUTPUT_DIR = '.'
DEFAULT_SERIALIZATION = 'manual'

ENV_OUTPUT_DIR = 'DTOIZE_OUTPUT_DIR'
ENV_SAMPLE_SIZE = 'DTOIZE_SAMPLE_SIZE'


class ConfigError(ValueError):
    """Raised when a configuration file is missing or invalid."""


@dataclass
class CollectionConfig:
    """One collection of a batch file. Paths are absolute."""
    name: str
    input_files: List[str]
    output: str
    sample_size: int = DEFAULT_SAMPLE_SIZE


@dataclass
class BatchConfig:
    """A parsed batch file."""
    collections: List[CollectionConfig] = field(default_factory=list)
    language: str = 'dart'
    serialization: str = DEFAULT_SERIALIZATION
    format_code: bool = False


@dataclass
class Settings:
    """Resolved settings of a single conversion."""
    output_dir: str = DEFAULT_OUTPUT_DIR
    sample_size: int = DEFAULT_SAMPLE_SIZE
    serialization: str = DEFAULT_SERIALIZATION
    format_code: bool = False


def _read_yaml(path: str) -> Any:
    if not os.path.exists(path):
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file {path}: {e}") from e


def _check_sample_size(value: Any, context: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{context} has invalid sample_size (must be a positive integer)")
    return value


def _check_choice(value: Any, choices, key: str) -> str:
    if value not in choices:
        raise ConfigError(f"Invalid {key} '{value}'. Expected one of: {', '.join(choices)}")
    return value


def load_batch_config(config_path: str) -> BatchConfig:
    """Loads and validates a batch file.

    Relative `input` and `output` paths are resolved against the directory
    of the batch file.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    full_path = os.path.abspath(config_path)
    data = _read_yaml(full_path)
    if not isinstance(data, dict):
        raise ConfigError('Configuration must be a mapping with a "collections" array')
    collections = data.get('collections')
    if not isinstance(collections, list):
        raise ConfigError('Configuration must have a "collections" array')
    if not collections:
        raise ConfigError('Configuration must have at least one collection')

    base_dir = os.path.dirname(full_path)
    default_sample_size = DEFAULT_SAMPLE_SIZE
    if 'sample_size' in data:
        default_sample_size = _check_sample_size(data['sample_size'], 'Configuration')

    batch = BatchConfig(
        language=_check_choice(data.get('language', 'dart'), LANGUAGES, 'language'),
        serialization=_check_choice(data.get('serialization', DEFAULT_SERIALIZATION), SERIALIZATION_METHODS, 'serialization'),
        format_code=bool(data.get('format', False)),
    )
    for index, entry in enumerate(collections):
        if not isinstance(entry, dict) or not entry.get('name'):
            raise ConfigError(f'Collection at index {index} is missing "name" field')
        name = str(entry['name'])
        if not entry.get('output'):
            raise ConfigError(f'Collection "{name}" is missing "output" field')
        inputs = entry.get('input')
        if isinstance(inputs, str):
            inputs = [inputs]
        if not inputs or not isinstance(inputs, list):
            raise ConfigError(f'Collection "{name}" is missing "input" field')
        sample_size = default_sample_size
        if 'sample_size' in entry:
            sample_size = _check_sample_size(entry['sample_size'], f'Collection "{name}"')
        batch.collections.append(CollectionConfig(
            name=name,
            input_files=[os.path.join(base_dir, str(p)) for p in inputs],
            output=os.path.join(base_dir, str(entry['output'])),
            sample_size=sample_size,
        ))
    logger.info("Loaded configuration from: %s", config_path)
    logger.info("  Found %d collection(s) to process", len(batch.collections))
    return batch


def find_default_config(search_dir: Optional[str] = None) -> Optional[str]:
    """Returns the first default config file present in the directory."""
    search_dir = search_dir or os.getcwd()
    for file_name in DEFAULT_CONFIG_FILES:
        file_path = os.path.join(search_dir, file_name)
        if os.path.exists(file_path):
            return file_path
    return None


def load_defaults(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Loads the `output` section of a defaults file.

    Without a path the working directory is searched. Problems with the file
    are logged and yield empty defaults.
    """
    if not config_path:
        config_path = find_default_config()
        if not config_path:
            return {}
        logger.info("Found config file: %s", os.path.basename(config_path))
    try:
        data = _read_yaml(config_path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError('Configuration must be a mapping')
        output = data.get('output') or {}
        if not isinstance(output, dict):
            raise ConfigError('"output" must be a mapping')
        if 'sample_size' in output:
            _check_sample_size(output['sample_size'], 'Configuration')
        if 'serialization' in output:
            _check_choice(output['serialization'], SERIALIZATION_METHODS, 'serialization')
        return output
    except ConfigError as e:
        logger.warning("Could not load config file: %s", e)
        return {}


def resolve_settings(output_dir: Optional[str] = None,
                     sample_size: Optional[int] = None,
                     serialization: Optional[str] = None,
                     format_code: Optional[bool] = None,
                     config_path: Optional[str] = None) -> Settings:
    """Resolves conversion settings.

    Priority: explicit argument > defaults file > environment > built-in default.
    """
    defaults = load_defaults(config_path)
    settings = Settings()

    if output_dir:
        settings.output_dir = output_dir
    elif defaults.get('directory'):
        settings.output_dir = str(defaults['directory'])
    elif os.environ.get(ENV_OUTPUT_DIR):
        settings.output_dir = os.environ[ENV_OUTPUT_DIR]

    if sample_size is not None:
        settings.sample_size = _check_sample_size(sample_size, 'Argument')
    elif 'sample_size' in defaults:
        settings.sample_size = defaults['sample_size']
    elif os.environ.get(ENV_SAMPLE_SIZE):
        try:
            settings.sample_size = _check_sample_size(int(os.environ[ENV_SAMPLE_SIZE]), ENV_SAMPLE_SIZE)
        except ValueError as e:
            raise ConfigError(f"{ENV_SAMPLE_SIZE} must be a positive integer") from e

    if serialization:
        settings.serialization = _check_choice(serialization, SERIALIZATION_METHODS, 'serialization')
    elif 'serialization' in defaults:
        settings.serialization = defaults['serialization']

    if format_code is not None:
        settings.format_code = format_code
    elif 'format' in defaults:
        settings.format_code = bool(defaults['format'])

    return settings
