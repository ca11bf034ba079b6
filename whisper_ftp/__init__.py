"""WhisperFTP transfer engine.

An FTP/FTPS client core, a LIST output parser and a batch transfer
orchestrator, with a small command-line front end.
"""

__version__ = "1.0.0"
