"""Color themes and Rich markup helpers for the swarmdeploy CLI.

Output refers to semantic style names (success, error, warning, ...); the
active theme, selected with ``cli.theme`` in config.yml, maps them to colors.
"""

import sys
from dataclasses import dataclass

from rich.console import Console
from rich.theme import Theme

from swarmdeploy.utils.logger import get_logger

logger = get_logger("cli")


@dataclass(frozen=True)
class ColorTheme:
    """Colors behind the semantic style names.

    Error and warning colors are UI conventions and stay fixed across themes.
    """

    error: str = "#ff0000"
    warning: str = "#ffaa00"

    header: str = "#f6a623"
    success: str = "#4caf50"
    command: str = "#8fa8c8"
    text_dim: str = "#666666"


# Default theme (honey)
SWARM_THEME = ColorTheme()

# Darker colors for light terminals
LIGHT_THEME = ColorTheme(
    header="#8a5a00",
    success="#2e7d32",
    command="#1f4e79",
    text_dim="#777777",
)

THEME_REGISTRY = {
    "default": SWARM_THEME,
    "swarm": SWARM_THEME,
    "light": LIGHT_THEME,
}


def _build_rich_theme(theme: ColorTheme) -> Theme:
    return Theme(
        {
            "success": f"bold {theme.success}",
            "error": f"bold {theme.error}",
            "warning": f"bold {theme.warning}",
            "header": f"bold {theme.header}",
            "dim": theme.text_dim,
            "label": "bold",
            "value": theme.success,
            "command": theme.command,
        }
    )


def _build_console(theme: ColorTheme) -> Console:
    # On Windows, force UTF-8 capable output for the status symbols
    if sys.platform == "win32":
        return Console(theme=_build_rich_theme(theme), force_terminal=True, legacy_windows=False)
    return Console(theme=_build_rich_theme(theme))


console = _build_console(SWARM_THEME)


def get_console() -> Console:
    """Console bound to the currently active theme."""
    return console


def set_theme(theme: ColorTheme):
    """Rebuild the shared console with ``theme``."""
    global console
    console = _build_console(theme)


def load_theme_from_config(config_path: str | None = None) -> ColorTheme:
    """Theme named by ``cli.theme``; the default theme for unknown names."""
    from swarmdeploy.utils.config import get_config_value

    theme_name = get_config_value("cli.theme", "default", config_path)

    theme = THEME_REGISTRY.get(theme_name)
    if theme is None:
        logger.warning(f"Unknown theme '{theme_name}', using default")
        theme = SWARM_THEME
    return theme


def initialize_theme_from_config(config_path: str | None = None):
    """Apply the configured theme at CLI startup.

    A configuration that cannot be read leaves the default theme in place;
    the command itself reports the configuration problem.
    """
    try:
        set_theme(load_theme_from_config(config_path))
        logger.debug("Applied theme from configuration")
    except Exception as e:
        logger.debug(f"Failed to load theme from config: {e}, using default")
        set_theme(SWARM_THEME)


class Styles:
    """Style names used in tables."""

    HEADER = "header"
    DIM = "dim"
    LABEL = "label"
    VALUE = "value"


class Messages:
    """Pre-formatted status lines."""

    @staticmethod
    def success(text: str) -> str:
        return f"[success]✓ {text}[/success]"

    @staticmethod
    def error(text: str) -> str:
        return f"[error]✗ {text}[/error]"

    @staticmethod
    def warning(text: str) -> str:
        return f"[warning]⚠️  {text}[/warning]"
