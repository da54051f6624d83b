"""Path constants and discovery for the FTP batch dispatcher.

Defines the application data directory and the files kept in it.
"""

import os
import sys
from pathlib import Path


# Application name for config directories
APP_NAME = "ftp-batch"


def get_app_data_dir() -> Path:
    """
    Get the application data directory.

    Returns:
        Path to app data directory (created if not exists)

    Platform-specific locations:
        - Windows: %APPDATA%/ftp-batch
        - Linux: ~/.config/ftp-batch
        - macOS: ~/Library/Application Support/ftp-batch
    """
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    app_dir = base / APP_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_profiles_path() -> Path:
    """
    Get the path to the connection profiles JSON file.

    Returns:
        Path to profiles.json
    """
    return get_app_data_dir() / "profiles.json"


def get_log_dir() -> Path:
    """
    Get the directory for log files.

    Returns:
        Path to logs directory (created if not exists)
    """
    log_dir = get_app_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_log_file_path() -> Path:
    """Get the path to the main log file."""
    return get_log_dir() / "ftp-batch.log"
