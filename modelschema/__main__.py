# File: modelschema/__main__.py
"""
ModelSchema - Module entry point.

Allows running the generator directly via::

    python -m modelschema --schema post.yaml -g migration,requests

This module simply delegates to ``modelschema.cli.cli_main``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from modelschema.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
