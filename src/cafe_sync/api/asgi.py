"""ASGI entrypoint for the cafe sync API."""

from cafe_sync.api.app import create_app
from cafe_sync.containers import build_container

app = create_app(build_container())
