"""Styling module for the ExamQt candidate window."""

from .color_palette import ColorPalette, Theme

__all__ = ["ColorPalette", "Theme"]
