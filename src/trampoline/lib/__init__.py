"""Helpers wrapping output, logging, paths and the external CLIs."""
