"""
Integration tests for the Transit Movements Validator.

These tests drive the HTTP surface end to end: routing, content negotiation,
the validation core and the packaged schemas together.
"""
