"""Entry point for `python -m pybridge`."""

from pybridge.cli.commands import app

if __name__ == "__main__":
    app()
