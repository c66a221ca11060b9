"""clashctl — personal Clash routing rules merged into remote configs."""

__version__ = "0.1.0"
