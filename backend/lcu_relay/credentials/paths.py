"""
Platform-specific lockfile locations
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

WINDOWS_LOCKFILE = Path("C:/Games/Riot Games/League of Legends/lockfile")
MACOS_LOCKFILE = Path("/Applications/League of Legends.app/Contents/LoL/lockfile")


def get_lockfile_path(platform: Optional[str] = None) -> Optional[Path]:
    """
    Lockfile path for the given (or current) platform

    Returns:
        Path, or None if the platform is not supported
    """
    platform = platform or sys.platform

    if platform == "win32":
        return WINDOWS_LOCKFILE

    elif platform == "darwin":  # macOS
        return MACOS_LOCKFILE

    else:
        logger.warning(f"Unsupported platform for LCU lockfile: {platform}")
        return None
