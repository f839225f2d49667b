# regarima/version.py
"""
regarima version information.

The package follows semantic versioning (MAJOR.MINOR.PATCH):
- MAJOR: Incompatible API changes
- MINOR: Backwards-compatible functionality additions
- PATCH: Backwards-compatible bug fixes
"""

from typing import Any, Dict, Tuple

# Version components
VERSION_MAJOR = 1
VERSION_MINOR = 0
VERSION_PATCH = 0

# Full version string
__version__ = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"

# Package metadata
__title__ = "regarima"
__description__ = "GLS estimation of regression models with ARIMA errors"
__author__ = "The regarima developers"
__copyright__ = "Copyright 2026 The regarima developers"
__license__ = "MIT"

# Python version requirements
__python_requires__ = ">=3.10"

# Package dependencies
__dependencies__ = {
    "numpy": ">=1.26.0",
    "scipy": ">=1.11.3",
    "pandas": ">=2.1.1",
    "numba": ">=0.58.0",
    "statsmodels": ">=0.14.0",
}


def get_version_info() -> Dict[str, Any]:
    """
    Get detailed version information.

    Returns:
        Dict containing the version string, its components, the Python
        requirement and the dependencies.
    """
    return {
        "version": __version__,
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "python_requires": __python_requires__,
        "dependencies": __dependencies__,
        "license": __license__
    }


def get_version_components() -> Tuple[int, int, int]:
    """Get the version components as a (major, minor, patch) tuple."""
    return (VERSION_MAJOR, VERSION_MINOR, VERSION_PATCH)


def is_compatible_with(version: str) -> bool:
    """
    Check if the current version is compatible with the specified version.

    Args:
        version: Version string to check compatibility with

    Returns:
        True when the major versions match and the current minor/patch
        version is equal or higher, False otherwise (including invalid
        version strings)
    """
    try:
        parts = version.split(".")
        major = int(parts[0])
        minor = int(parts[1] if len(parts) > 1 else 0)
        patch = int(parts[2] if len(parts) > 2 else 0)
    except (ValueError, IndexError):
        return False

    if VERSION_MAJOR != major:
        return False
    return (VERSION_MINOR, VERSION_PATCH) >= (minor, patch)
