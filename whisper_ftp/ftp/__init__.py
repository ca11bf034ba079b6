"""FTP operations module for WhisperFTP.

This module handles all FTP-related functionality:
- FTPClient: Connect, list, transfer and manage remote files
- FTPConnectionConfig: Immutable connection parameters
- Listing: FileSystemEntry and the LIST output parser
- Exceptions: FTP-specific error types
"""
