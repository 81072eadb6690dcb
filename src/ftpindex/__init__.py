"""Directory catalog for remote FTP servers."""

__version__ = "0.1.0"
