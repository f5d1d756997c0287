"""
Core package for the Transit Movements Validator.

The ``validation`` subpackage holds the message-type registry, schema cache,
stream adapter and the XML and JSON validation engines.
"""
