"""Configuration module for the FTP batch dispatcher.

This module handles connection profiles and credentials:
- ProfileManager: JSON-based profile persistence
- CredentialManager: Secure credential storage via keyring
- Paths: Path constants and discovery
- ConnectionProfile: Profile dataclass
"""
