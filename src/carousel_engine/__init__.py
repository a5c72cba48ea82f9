"""Batch image reformatting for social-media carousels."""

__version__ = "0.1.0"
