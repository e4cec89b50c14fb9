"""
Filesystem locations used by ROUTEFLOW.

Route files and config.json are user data: they sit beside the checkout (or
beside a packaged executable), never inside the routeflow package. The
package directory only holds bundled read-only data such as palette.yaml.
ROUTEFLOW_HOME relocates the user data root, e.g. for a shared project disk.
"""

import os
import sys
from pathlib import Path

HOME_ENV = "ROUTEFLOW_HOME"


def get_app_dir() -> Path:
    """Root for user data: $ROUTEFLOW_HOME, the executable's folder, or the checkout."""
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return get_package_dir().parent


def get_package_dir() -> Path:
    return Path(__file__).parent


def get_db_dir() -> Path:
    """Parent folder of all project folders."""
    return get_app_dir() / "db"


def get_config_path() -> Path:
    return get_app_dir() / "config.json"
