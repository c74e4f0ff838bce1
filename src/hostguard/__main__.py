"""Allow ``python -m hostguard``."""

from .cli import app

app(prog_name="hostguard")
