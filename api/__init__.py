"""
FastAPI application for the patent portfolio tracker.

This package contains the REST API for importing the patent register,
browsing and editing patents, recording renewal payments and exporting
workbooks.
"""

__version__ = "1.0.0"
