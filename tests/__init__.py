"""Test suite for modschema.

This package contains tests for:
- Schema resolution (types, implied ancestors, definition errors)
- Type checkers and the allowed-value checker
- Required-ness resolution for documents and modifiers
- Key-path walking of documents and modifiers
- The ValidationEngine facade and default messages
"""
