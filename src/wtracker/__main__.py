"""wtracker CLI entry."""

from wtracker.cli import app

if __name__ == "__main__":
    app()
