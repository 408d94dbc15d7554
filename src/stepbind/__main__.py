"""Allow running stepbind as ``python -m stepbind``."""

from stepbind.cli import cli

if __name__ == "__main__":
    cli()
