"""Configuration module for WhisperFTP.

This module handles application settings and credentials:
- SettingsManager: JSON-based settings and saved connections
- CredentialEncryption: Keyring-backed password protection
- Paths: Application data locations
- AppSettings: Settings dataclass
"""
