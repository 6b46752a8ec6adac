"""Test package for mcp-imap.

What:
  Marks ``tests`` as a package so ``tests.unit`` helpers (fakes, fixtures)
  import the same way from every suite.

Invariants & Safety:
  - Importing ``tests`` has no side effects; environment setup lives in
    ``conftest.py`` fixtures.
"""
