"""netdecode version"""

import importlib.metadata
from pathlib import Path

import toml

DISTRIBUTION_NAME = "netdecode"


def _find_pyproject(start: Path) -> Path | None:
    """walk up from `start` to the first directory holding a pyproject.toml"""
    for directory in start.parents:
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def version_str() -> str:
    """Get the netdecode version.

    Installed packages report the version recorded in their distribution
    metadata. A source checkout that was never installed falls back to the
    version declared in the checkout's pyproject.toml, and 'dev' is returned if
    neither is available.
    """
    try:
        return importlib.metadata.version(DISTRIBUTION_NAME)
    except importlib.metadata.PackageNotFoundError:
        pass

    pyproject_file = _find_pyproject(Path(__file__).resolve())
    if pyproject_file is None:
        return "dev"

    try:
        data = toml.load(pyproject_file)
    except toml.TomlDecodeError:
        return "dev"

    poetry = data.get("tool", {}).get("poetry", {})
    if poetry.get("name") != DISTRIBUTION_NAME:
        return "dev"
    return poetry.get("version", "dev")
