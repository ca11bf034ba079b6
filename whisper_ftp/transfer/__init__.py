"""Transfer module for WhisperFTP.

This module runs multi-item operations on top of FTPClient:
- TransferOrchestrator: Batch upload, download and delete
- Models: Request and result types
"""
