"""Packaged XSD and JSON schema documents, one per message type."""
