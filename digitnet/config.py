"""
config.py
~~~~~~~~~

Network configuration: layer widths and training hyperparameters.

The text format has one ``key: value`` pair per line::

    input: 784
    internal: 100
    internal: 30
    output: 10
    rate: 0.1
    lambda: 1.0

``internal`` may be repeated, each occurrence appends an internal layer.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from digitnet.errors import ConfigInvalid

logger = logging.getLogger(__name__)

# Upper bound on the number of internal layers
MAX_INTERNAL_LAYERS = 32

# Aliases accepted by config_from_dict, mapped to Config fields
_DICT_KEYS = {
    'input': 'input_size',
    'input_size': 'input_size',
    'internal': 'internal_sizes',
    'internal_sizes': 'internal_sizes',
    'output': 'output_size',
    'output_size': 'output_size',
    'rate': 'learning_rate',
    'learning_rate': 'learning_rate',
    'lambda': 'sigmoid_lambda',
    'sigmoid_lambda': 'sigmoid_lambda',
}


@dataclass
class Config:
    """Shape and hyperparameters of a network."""

    input_size: int = 0
    internal_sizes: List[int] = field(default_factory=list)
    output_size: int = 0
    learning_rate: float = 0.0
    sigmoid_lambda: float = 0.0

    def validate(self) -> None:
        """
        Check every field is in range.

        Raises:
            ConfigInvalid: On the first invalid field
        """
        if self.input_size < 1:
            raise ConfigInvalid(
                f"Input width must be positive, got {self.input_size}"
            )
        if self.output_size < 1:
            raise ConfigInvalid(
                f"Output width must be positive, got {self.output_size}"
            )
        if len(self.internal_sizes) > MAX_INTERNAL_LAYERS:
            raise ConfigInvalid(
                f"At most {MAX_INTERNAL_LAYERS} internal layers are supported, "
                f"got {len(self.internal_sizes)}"
            )
        for position, width in enumerate(self.internal_sizes):
            if width < 1:
                raise ConfigInvalid(
                    f"Internal layer {position} width must be positive, got {width}"
                )
        if not math.isfinite(self.learning_rate) or self.learning_rate <= 0:
            raise ConfigInvalid(
                f"Learning rate must be a positive number, got {self.learning_rate}"
            )
        if not math.isfinite(self.sigmoid_lambda) or self.sigmoid_lambda <= 0:
            raise ConfigInvalid(
                f"Lambda must be a positive number, got {self.sigmoid_lambda}"
            )

    @property
    def sizes(self) -> List[int]:
        """Widths of every layer, input first."""
        return [self.input_size, *self.internal_sizes, self.output_size]


def _to_width(value: float, what: str) -> int:
    if not math.isfinite(value) or value != int(value):
        raise ConfigInvalid(f"{what} must be a whole number, got {value}")
    return int(value)


def _apply_line(config: Config, line: str, line_number: int) -> None:
    tokens = line.split()

    key = tokens[0]
    if not key.endswith(':'):
        raise ConfigInvalid("Key must end with ':'", line, line_number)
    key = key[:-1]

    if len(tokens) < 2:
        raise ConfigInvalid("Missing value", line, line_number)
    if len(tokens) > 2:
        raise ConfigInvalid("Unexpected trailing value", line, line_number)

    try:
        value = float(tokens[1])
    except ValueError:
        raise ConfigInvalid("Value is not a number", line, line_number) from None

    try:
        if key == 'input':
            config.input_size = _to_width(value, "input")
        elif key == 'output':
            config.output_size = _to_width(value, "output")
        elif key == 'internal':
            config.internal_sizes.append(_to_width(value, "internal"))
        elif key == 'rate':
            config.learning_rate = value
        elif key == 'lambda':
            config.sigmoid_lambda = value
        else:
            raise ConfigInvalid(f"Unknown key '{key}'")
    except ConfigInvalid as e:
        raise ConfigInvalid(str(e), line, line_number) from None


def parse_config(text: str) -> Config:
    """
    Parse configuration text and validate the result.

    Raises:
        ConfigInvalid: If a line is malformed or a value is out of range
    """
    config = Config()
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue
        _apply_line(config, line, line_number)

    config.validate()
    return config


def read_config(path: str) -> Config:
    """
    Read and validate a configuration file.

    Args:
        path: Path of the configuration file

    Returns:
        Config: The parsed configuration

    Raises:
        ConfigInvalid: If the file cannot be read or is invalid
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise ConfigInvalid(f"Cannot read configuration file {path}: {e}") from e

    config = parse_config(text)
    logger.info(f"Loaded configuration from {path}: sizes={config.sizes}")
    return config


def config_from_dict(data: Dict[str, Any]) -> Config:
    """
    Build a validated configuration from a JSON-like mapping.

    Accepts the file keys (``input``, ``internal``, ...) as well as the
    field names of :class:`Config`.

    Raises:
        ConfigInvalid: On unknown keys, wrong types or out-of-range values
    """
    if not isinstance(data, dict):
        raise ConfigInvalid("Configuration must be an object")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        name = _DICT_KEYS.get(key)
        if name is None:
            raise ConfigInvalid(f"Unknown key '{key}'")
        values[name] = value

    config = Config()
    try:
        if 'input_size' in values:
            config.input_size = _to_width(float(values['input_size']), "input")
        if 'output_size' in values:
            config.output_size = _to_width(float(values['output_size']), "output")
        if 'internal_sizes' in values:
            internal = values['internal_sizes']
            if not isinstance(internal, list):
                internal = [internal]
            config.internal_sizes = [
                _to_width(float(width), "internal") for width in internal
            ]
        if 'learning_rate' in values:
            config.learning_rate = float(values['learning_rate'])
        if 'sigmoid_lambda' in values:
            config.sigmoid_lambda = float(values['sigmoid_lambda'])
    except ConfigInvalid:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigInvalid(f"Invalid configuration value: {e}") from e

    config.validate()
    return config
