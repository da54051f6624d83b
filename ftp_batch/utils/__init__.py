"""Utility module for the FTP batch dispatcher.

This module provides cross-cutting utilities:
- Logging: Configured logging with secret redaction
- Validators: Input validation for host, port, remote paths
"""
