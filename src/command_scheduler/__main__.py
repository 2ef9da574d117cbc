"""Allow ``python -m command_scheduler``."""

from command_scheduler.cli.app import app

if __name__ == "__main__":
    app()
