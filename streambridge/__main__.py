"""Entry point for python -m streambridge."""

from streambridge.cli import app


def main() -> None:
    """Run the Typer CLI."""
    app()


if __name__ == "__main__":
    main()
