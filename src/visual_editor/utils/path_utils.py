# src/visual_editor/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package and user paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the installed 'visual_editor' package."""
        return Path(__file__).resolve().parent.parent

    @staticmethod
    def get_settings_file() -> Path:
        """Returns the path of the settings.json that ships with the package."""
        return PathUtils.get_package_root() / "settings.json"

    # --- User specific paths ---

    @staticmethod
    def get_user_config_dir() -> Path:
        """
        Returns the path to the user's config directory.
        (e.g., ~/.visual_editor/)
        """
        return Path.home() / ".visual_editor"

    @staticmethod
    def get_user_settings_file() -> Path:
        """Returns the optional per-user settings file that overrides packaged defaults."""
        return PathUtils.get_user_config_dir() / "settings.json"
