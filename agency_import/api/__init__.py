"""HTTP surface of the agency bulk import pipeline."""

from agency_import.api.app import create_app

__all__ = ["create_app"]
