"""ASGI entrypoint for the caption gallery."""

from caption_gallery.api.app import create_app
from caption_gallery.containers import build_container

app = create_app(build_container())
