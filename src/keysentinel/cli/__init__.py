"""
CLI layer for keysentinel.

Loads settings and the YAML executor config, builds a ``Sentinel`` and
hands off to it. All dispatch logic lives in ``keysentinel.dispatch`` —
this package handles only argument parsing and terminal output.

Entry point::

    keysentinel --help
"""

from keysentinel.cli.app import app

__all__ = ["app"]
