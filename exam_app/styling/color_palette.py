"""Color palette for the ExamQt candidate window supporting light and dark themes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Theme(Enum):
    """Application theme options."""
    LIGHT = auto()
    DARK = auto()


@dataclass(frozen=True)
class ThemeColors:
    """Color definitions for a specific theme."""
    light: str
    dark: str

    def get(self, theme: Theme) -> str:
        return self.light if theme == Theme.LIGHT else self.dark


class ColorPalette:
    """Centralized color definitions for the candidate window."""

    TEXT_PRIMARY = ThemeColors(light="#1F2937", dark="#F5F5F5")
    TEXT_SECONDARY = ThemeColors(light="#6B7280", dark="#AAAAAA")

    BACKGROUND_PRIMARY = ThemeColors(light="#FFFFFF", dark="#1E1E1E")
    BACKGROUND_SECONDARY = ThemeColors(light="#F3F4F6", dark="#2D2D2D")

    BORDER_PRIMARY = ThemeColors(light="#D1D5DB", dark="#555555")

    BUTTON_PRIMARY_BG = ThemeColors(light="#2563EB", dark="#4A9EFF")
    BUTTON_PRIMARY_TEXT = ThemeColors(light="#FFFFFF", dark="#000000")
    BUTTON_SECONDARY_BG = ThemeColors(light="#F3F4F6", dark="#3A3A3A")
    BUTTON_HOVER_BG = ThemeColors(light="#E5E7EB", dark="#505050")

    # Countdown bands
    TIMER_NORMAL = ThemeColors(light="#16A34A", dark="#6FCF6F")
    TIMER_WARNING = ThemeColors(light="#CA8A04", dark="#FFC83D")
    TIMER_CRITICAL = ThemeColors(light="#DC2626", dark="#FF6B6B")

    RESULT_PASSED = ThemeColors(light="#107C10", dark="#6FCF6F")
    RESULT_FAILED = ThemeColors(light="#D13438", dark="#FF6B6B")

    @classmethod
    def timer_color(cls, band: str, theme: Theme = Theme.LIGHT) -> str:
        colors = {
            "normal": cls.TIMER_NORMAL,
            "warning": cls.TIMER_WARNING,
            "critical": cls.TIMER_CRITICAL,
        }
        return colors.get(band, cls.TIMER_NORMAL).get(theme)
