"""
Test suite for the Transit Movements Validator.

Layout:
- unit/: validation core, orchestrator and configuration in isolation
- integration/: the HTTP surface over the real schemas
- data/: sample message payloads
"""
