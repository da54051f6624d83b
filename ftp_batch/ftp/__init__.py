"""FTP operations module for the FTP batch dispatcher.

This module handles all FTP-related functionality:
- FTPClient: Session management with state tracking and TLS
- Listing: Directory entries from MLSD/LIST
- Streams: Buffer <-> stream bridging for transfers
- PEM: Repair of newline-mangled certificates and keys
- Credential check: Connect-and-close check
- Exceptions: FTP-specific error types
"""
