"""Batch FTP/FTPS operation dispatcher."""

__version__ = "1.0.0"
