"""Docker-based CI trampoline for Google Cloud builds."""

__version__ = "2.0.0"
