"""Pi-Apps package-app status helper."""

__version__ = "0.1.0"
