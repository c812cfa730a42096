"""Version information for inputlirc.

The installed distribution's metadata is authoritative; a source checkout
falls back to reading pyproject.toml.
"""

import tomllib
from importlib import metadata
from pathlib import Path

DIST_NAME = 'inputlirc'


def _find_pyproject_toml() -> Path | None:
    # common/ -> src/ -> project root
    candidate = Path(__file__).resolve().parent.parent.parent / 'pyproject.toml'
    return candidate if candidate.exists() else None


def _version_from_pyproject() -> str | None:
    pyproject_path = _find_pyproject_toml()
    if pyproject_path is None:
        return None
    try:
        with pyproject_path.open('rb') as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return None
    version = data.get('project', {}).get('version')
    return str(version) if version else None


def get_version() -> str:
    """Return the inputlirc version, or 'unknown' if it cannot be determined."""
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return _version_from_pyproject() or 'unknown'


__version__ = get_version()
