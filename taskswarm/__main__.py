"""Entry point for python -m taskswarm."""

from taskswarm.cli.commands import app

if __name__ == "__main__":
    app()
