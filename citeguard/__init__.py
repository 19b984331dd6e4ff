"""Citation integrity checks and staged auto-repair for footnoted markdown pages."""

__version__ = "0.1.0"
