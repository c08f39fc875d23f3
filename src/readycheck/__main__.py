"""Entry point for running readycheck as a module.

This allows the CLI to be invoked with ``python -m readycheck``.
"""

from .cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli()
