"""Version information for lorawan-identity."""

__version__ = "0.1.0"
