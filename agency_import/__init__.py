"""Bulk agency import: File Decoder -> Row Validator -> Import Committer."""

__version__ = "0.1.0"
