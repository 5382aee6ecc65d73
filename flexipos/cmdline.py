"""
Command-line helpers: input/output file checks and model writing.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import sys
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .errors import ConfigurationError, ToolIOError
from .trainer import POSModel

logger = logging.getLogger(__name__)

_WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


def _is_writable(path: Path) -> bool:
    # Read-only mode bits are honoured even for root
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return bool(mode & _WRITE_BITS) and os.access(path, os.W_OK)


def _nearest_existing_parent(path: Path) -> Optional[Path]:
    for parent in path.parents:
        if parent.exists():
            return parent
    return None


def check_input_file(label: str, path: Path) -> None:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"The {label} file does not exist: {path}")
    if not path.is_file():
        raise ConfigurationError(f"The {label} file is not a normal file: {path}")
    if not os.access(path, os.R_OK):
        raise ConfigurationError(f"No permissions to read the {label} file: {path}")


def check_output_file(label: str, path: Path) -> None:
    """
    Fail with a configuration error unless ``path`` can be written.

    An existing path must be a writable regular file. Otherwise the nearest
    existing ancestor must be a writable directory (missing directories are
    created when the model is written).
    """
    path = Path(path).expanduser().absolute()
    if path.exists():
        if not path.is_file():
            raise ConfigurationError(f"The {label} file is not a normal file: {path}")
        if not _is_writable(path):
            raise ConfigurationError(f"No permissions to write the {label} file: {path}")
        return

    parent = _nearest_existing_parent(path)
    if parent is None or not parent.is_dir():
        raise ConfigurationError(
            f"The parent directory of the {label} file does not exist, please create it first: {path}"
        )
    if not os.access(parent, os.W_OK | os.X_OK):
        raise ConfigurationError(f"No permissions to create the {label} file in {parent}")


@contextmanager
def progress(message: str) -> Iterator[None]:
    """
    Report a pipeline step on stderr as ``[flexipos] <message> ... done (<seconds>s)``.

    The line ends with ``failed`` instead when the block raises; the exception
    is re-raised unchanged.
    """
    print(f"[flexipos] {message} ... ", end="", file=sys.stderr, flush=True)
    started = time.perf_counter()
    try:
        yield
    except BaseException:
        print("failed", file=sys.stderr)
        raise
    print(f"done ({time.perf_counter() - started:.3f}s)", file=sys.stderr)


def write_model(label: str, path: Path, model: POSModel) -> Path:
    """
    Serialize ``model`` to ``path`` as JSON.

    The model is written to a temporary file next to the destination and
    moved into place, so a failed write never leaves a partial model behind.
    """
    path = Path(path).expanduser().absolute()
    tmp_file: Optional[Path] = None
    try:
        with progress(f"Writing {label} model"):
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", delete=False, dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            ) as handle:
                tmp_file = Path(handle.name)
                json.dump(model.to_dict(), handle, ensure_ascii=False, indent=2)
                handle.write("\n")
            os.replace(tmp_file, path)
            tmp_file = None
    except (OSError, TypeError, ValueError) as exc:
        raise ToolIOError(f"Failed to write {label} model file '{path}': {exc}") from exc
    finally:
        if tmp_file is not None:
            try:
                tmp_file.unlink()
            except OSError:
                pass
    print(f"[flexipos] Wrote {label} model to path: {path}", file=sys.stderr)
    logger.debug("Model %s written with %d features", path, len(model.weights))
    return path
