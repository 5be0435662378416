"""Trampoline configuration loading."""

from .loader import ConfigLoader, TrampolineConfig

__all__ = ["ConfigLoader", "TrampolineConfig"]
