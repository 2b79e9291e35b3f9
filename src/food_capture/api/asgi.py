"""ASGI entrypoint for the food capture control API."""

from food_capture.api.app import create_app
from food_capture.containers import build_container

app = create_app(build_container())
