"""Presentation of recognized text."""

from presentation.page import render_page, render_predictions

__all__ = [
    'render_page',
    'render_predictions',
]
