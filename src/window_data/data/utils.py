"""Utility functions for the data pipeline."""

from pathlib import Path


def resolve_path(root_folder: str | Path, path: str) -> Path:
    """Join a manifest path onto ``root_folder``.

    An empty ``root_folder`` leaves ``path`` relative to the working
    directory; absolute manifest paths are kept as they are.
    """
    return Path(root_folder) / path
