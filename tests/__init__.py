"""
entkv Test Suite.

This package contains:
- unit/: Unit tests (codec, descriptor tables, metadata cache, drivers)
- integration/: Store-backed tests (strategies and queries on InMemoryStore)
"""
