"""
Training parameters for the part-of-speech trainer.

Parameters either come from a ``key=value`` file or are synthesized from the
iteration count, feature cutoff and algorithm given on the command line.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ALGORITHM_PARAM = "Algorithm"
ITERATIONS_PARAM = "Iterations"
CUTOFF_PARAM = "Cutoff"
TRAINER_TYPE_PARAM = "TrainerType"
LEARNING_RATE_PARAM = "LearningRate"

DEFAULT_ITERATIONS = 100
DEFAULT_CUTOFF = 5
DEFAULT_ALGORITHM = "maxent"

TRAINER_TYPES = {"Event", "Sequence"}


class AlgorithmType(Enum):
    MAXENT = "maxent"
    PERCEPTRON = "perceptron"
    PERCEPTRON_SEQUENCE = "perceptron_sequence"

    @property
    def is_sequence(self) -> bool:
        return self is AlgorithmType.PERCEPTRON_SEQUENCE

    @classmethod
    def from_param(cls, value: Optional[str]) -> Optional["AlgorithmType"]:
        """Look up the value stored under ``Algorithm`` (the enum name)."""
        if not value:
            return None
        return cls.__members__.get(value.strip())

    def __str__(self) -> str:
        return self.name


def get_model_type(model_string: Optional[str]) -> Optional[AlgorithmType]:
    """Map a selector to an algorithm; ``None`` means maxent, unknown means ``None``."""
    if model_string is None:
        model_string = DEFAULT_ALGORITHM
    for algorithm in AlgorithmType:
        if algorithm.value == model_string:
            return algorithm
    return None


class TrainingParameters:
    """Ordered string-to-string mapping of training settings."""

    def __init__(self, settings: Optional[Mapping[str, str]] = None):
        self._settings: Dict[str, str] = {}
        for key, value in (settings or {}).items():
            self.put(key, value)

    @classmethod
    def parse(cls, text: str, source: str = "<string>") -> "TrainingParameters":
        params = cls()
        for line_number, raw_line in enumerate(text.splitlines(), 1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            if not sep or not key.strip():
                raise ValueError(
                    f"Malformed line {line_number} in training parameters '{source}': {raw_line!r}"
                )
            params.put(key.strip(), value.strip())
        return params

    def put(self, key: str, value: object) -> None:
        self._settings[str(key)] = str(value)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._settings.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        value = self._settings.get(key)
        return default if value is None else int(value)

    def get_float(self, key: str, default: float) -> float:
        value = self._settings.get(key)
        return default if value is None else float(value)

    @property
    def settings(self) -> Dict[str, str]:
        return dict(self._settings)

    @property
    def algorithm(self) -> AlgorithmType:
        return AlgorithmType.from_param(self.get(ALGORITHM_PARAM)) or AlgorithmType.MAXENT

    @property
    def iterations(self) -> int:
        return self.get_int(ITERATIONS_PARAM, DEFAULT_ITERATIONS)

    @property
    def cutoff(self) -> int:
        return self.get_int(CUTOFF_PARAM, DEFAULT_CUTOFF)

    def __contains__(self, key: object) -> bool:
        return key in self._settings

    def __iter__(self) -> Iterator[str]:
        return iter(self._settings)

    def __len__(self) -> int:
        return len(self._settings)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrainingParameters):
            return NotImplemented
        return self._settings == other._settings

    def __repr__(self) -> str:
        return f"TrainingParameters({self._settings!r})"


def _is_int(value: str, minimum: int) -> bool:
    try:
        return int(value) >= minimum
    except ValueError:
        return False


def is_valid(settings: Mapping[str, str]) -> bool:
    """Check settings against the parameters the training engine accepts."""
    algorithm_name = settings.get(ALGORITHM_PARAM)
    algorithm = None
    if algorithm_name is not None:
        algorithm = AlgorithmType.from_param(algorithm_name)
        if algorithm is None:
            return False

    iterations = settings.get(ITERATIONS_PARAM)
    if iterations is not None and not _is_int(iterations, 1):
        return False
    cutoff = settings.get(CUTOFF_PARAM)
    if cutoff is not None and not _is_int(cutoff, 0):
        return False

    learning_rate = settings.get(LEARNING_RATE_PARAM)
    if learning_rate is not None:
        try:
            if float(learning_rate) <= 0:
                return False
        except ValueError:
            return False

    trainer_type = settings.get(TRAINER_TYPE_PARAM)
    if trainer_type is not None:
        if trainer_type not in TRAINER_TYPES:
            return False
        if trainer_type == "Sequence" and algorithm is not AlgorithmType.PERCEPTRON_SEQUENCE:
            return False
    return True


def create_training_parameters(iterations: int, cutoff: int) -> TrainingParameters:
    params = TrainingParameters()
    params.put(ITERATIONS_PARAM, iterations)
    params.put(CUTOFF_PARAM, cutoff)
    return params


def load_training_parameters(
    path: Optional[Path], support_sequence: bool = True
) -> Optional[TrainingParameters]:
    """
    Load a training parameters file.

    Returns ``None`` when no path is given. A missing, unreadable or malformed
    file aborts with a configuration error naming the file.
    """
    if path is None:
        return None
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(
            f"Training parameters file '{path}' cannot be read: {exc}"
        ) from exc
    try:
        params = TrainingParameters.parse(text, source=str(path))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    if not support_sequence and params.get(TRAINER_TYPE_PARAM) == "Sequence":
        raise ConfigurationError(
            f"Sequence training is not supported by the parameters in '{path}'"
        )
    logger.debug("Loaded %d training parameters from %s", len(params), path)
    return params


def resolve_training_parameters(
    params_path: Optional[Path],
    iterations: Optional[int] = None,
    cutoff: Optional[int] = None,
    algorithm: Optional[str] = None,
) -> TrainingParameters:
    """Return the parameters file's settings, or synthesize them from the flags."""
    params = load_training_parameters(params_path, True)
    if params is not None:
        if not is_valid(params.settings):
            raise ConfigurationError(f"Training parameters file '{params_path}' is invalid!")
        return params

    model_type = get_model_type(algorithm)
    if model_type is None:
        raise ConfigurationError(
            f"Unknown algorithm type '{algorithm}'. "
            f"Choose from: {', '.join(a.value for a in AlgorithmType)}"
        )
    params = create_training_parameters(
        DEFAULT_ITERATIONS if iterations is None else iterations,
        DEFAULT_CUTOFF if cutoff is None else cutoff,
    )
    params.put(ALGORITHM_PARAM, model_type)
    if not is_valid(params.settings):
        raise ConfigurationError(
            f"Invalid training flags: iterations={params.get(ITERATIONS_PARAM)}, "
            f"cutoff={params.get(CUTOFF_PARAM)}"
        )
    return params
