"""Utility functions for the backend."""

from app.utils.normalizers import clean_text, coerce_float, coerce_int, display_text

__all__ = ["clean_text", "coerce_float", "coerce_int", "display_text"]
