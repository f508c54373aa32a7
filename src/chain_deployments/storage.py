"""Durable JSON document storage for chain-deployments library."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from .exceptions import RegistryIOError


def load_json(path: Path) -> Optional[Any]:
    """
    Load a JSON document.

    Args:
        path: Path to the document

    Returns:
        Parsed document, or None if the file does not exist

    Raises:
        RegistryIOError: If the file exists but cannot be read or parsed
    """
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        raise RegistryIOError(f"Corrupted JSON document at {path}: {e}") from e
    except OSError as e:
        raise RegistryIOError(f"Cannot read {path}: {e}") from e


def save_json(data: Any, path: Path) -> None:
    """
    Atomically write a JSON document.

    The document is written to a temporary file in the same directory, flushed
    to disk and renamed over the target, so a crash mid-write leaves the
    previous version intact.

    Args:
        data: JSON-serialisable document
        path: Destination path

    Raises:
        RegistryIOError: If the document cannot be written

    Creates parent directories if they don't exist.
    """
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, TypeError, ValueError) as e:
        raise RegistryIOError(f"Cannot write {path}: {e}") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
