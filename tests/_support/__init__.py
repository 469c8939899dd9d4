"""
Test support utilities for keysentinel tests.

Test doubles and polling helpers that don't fit as pytest fixtures but
are shared across test modules.
"""
