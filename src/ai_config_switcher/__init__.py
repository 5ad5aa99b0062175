"""Switch AI coding-assistant config profiles in a project directory."""

__version__ = "0.1.0"
