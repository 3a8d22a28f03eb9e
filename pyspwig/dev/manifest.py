"""Reading the theme manifest."""

import json
from pathlib import Path

from ..exceptions import SpwigThemeError
from ..models import ThemeManifest

MANIFEST_FILE = "manifest.json"
DEFAULT_THEME_NAME = "Unknown Theme"


def load_manifest(theme_root: Path) -> ThemeManifest:
    """Load manifest.json from a theme directory.

    Args:
        theme_root: Theme root directory

    Returns:
        ThemeManifest with the theme name and raw manifest data

    Raises:
        SpwigThemeError: If the directory or manifest is missing or unreadable
    """
    if not theme_root.exists():
        raise SpwigThemeError(f"Theme directory does not exist: {theme_root}")
    if not theme_root.is_dir():
        raise SpwigThemeError(f"Theme path is not a directory: {theme_root}")

    manifest_path = theme_root / MANIFEST_FILE
    if not manifest_path.is_file():
        raise SpwigThemeError(
            f"{MANIFEST_FILE} not found in {theme_root}. Are you in a theme directory?"
        )

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise SpwigThemeError(f"Cannot read {manifest_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SpwigThemeError(f"Invalid JSON in {manifest_path}: {e}") from e

    if not isinstance(data, dict):
        raise SpwigThemeError(f"{manifest_path} must contain a JSON object")

    name = data.get("name")
    return ThemeManifest(
        name=str(name) if name else DEFAULT_THEME_NAME,
        path=str(theme_root),
        raw=data,
    )
