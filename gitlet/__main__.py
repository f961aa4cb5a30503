"""Entry point for running gitlet as a module.

    python -m gitlet fetch origin
"""

from . import cli

if __name__ == "__main__":
    cli._main()
