"""Entry point for ``python -m tablescribe``."""

from tablescribe.cli import app

app()
