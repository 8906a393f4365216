"""Command line front-end for flashparse.

``main`` is the ``flashparse`` console script; ``python -m cli`` reaches the
same Typer app.
"""

from .commands import app


def main() -> None:
    """Run the flashparse Typer app."""
    app(prog_name="flashparse")


if __name__ == "__main__":
    main()
