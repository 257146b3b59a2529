# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

# File for tracking the application version

from importlib.metadata import PackageNotFoundError, version as package_version

try:
    from setuptools_scm import get_version
    __version__ = get_version(root="..", relative_to=__file__)

except (ImportError, LookupError, OSError):
    try:
        __version__ = package_version("give-protocol-validation")
    except PackageNotFoundError:
        __version__ = "0.0.0"
