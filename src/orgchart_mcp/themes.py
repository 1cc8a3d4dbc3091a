"""
Theme definitions for OrgChart-MCP.

Provides dark and light color palettes for rendering charts.
Each theme defines colors for:
- Canvas background and title
- Unit and member boxes
- Connectors
- Search emphasis
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class ThemePalette:
    """Color palette for a theme."""

    # Canvas
    background: str
    title_color: str

    # Node boxes
    node_fill: str
    node_label: str
    unit_border: str
    member_border: str

    # Connectors
    connection: str

    # Search match outline
    emphasis_border: str


# Catppuccin Mocha (dark theme)
DARK_THEME = ThemePalette(
    background="#11111b",
    title_color="#cdd6f4",
    node_fill="#1e1e2e",
    node_label="#cdd6f4",
    unit_border="#89b4fa",
    member_border="#6c7086",
    connection="#585b70",
    emphasis_border="#ff0000",
)


# Light theme - white background, the classic flow-chart look
LIGHT_THEME = ThemePalette(
    background="#ffffff",
    title_color="#1e1e2e",
    node_fill="#ffffff",
    node_label="#1a192b",
    unit_border="#1a192b",
    member_border="#1a192b",
    connection="#b1b1b7",
    emphasis_border="#ff0000",
)


# Theme registry
THEMES: dict[str, ThemePalette] = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}


def get_theme(name: str) -> ThemePalette:
    """Get a theme palette by name.

    Raises:
        ValueError: If theme name is not recognized
    """
    if name not in THEMES:
        valid = ", ".join(THEMES.keys())
        raise ValueError(f"Unknown theme '{name}'. Valid themes: {valid}")
    return THEMES[name]
