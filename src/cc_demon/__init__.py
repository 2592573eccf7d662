"""Gateway daemon core: persistent Claude CLI session supervision."""

__version__ = "0.3.0"
