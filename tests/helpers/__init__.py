"""Test helper modules for the rulegate test suite.

- configs: configuration document builders
- engines: expression engine wrappers used to observe evaluation order
- io_utils: I/O utilities for writing YAML, JSON and text files
"""
from __future__ import annotations
