"""
Domain Layer

This package contains the core domain types, separated from transport
and storage concerns.

Structure:
- value_objects/: Immutable value types without identity
"""
