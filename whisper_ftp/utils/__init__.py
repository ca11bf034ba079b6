"""Utility module for WhisperFTP.

This module provides cross-cutting utilities:
- Logging: Configured logging with PII redaction
- Validators: Input validation for hosts, ports, paths
- Threading: Cancellation tokens and background task helpers
"""
