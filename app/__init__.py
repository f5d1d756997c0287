"""
Transit Movements Validator Application Package

This package contains the FastAPI application that validates customs transit
movement messages (XML and JSON) against the schema of their message type.
"""

__version__ = "1.0.0"
