"""ASGI entrypoint for the entry preservation API."""

from entry_preservation.api.app import create_app
from entry_preservation.containers import build_container

app = create_app(build_container())
