"""ASGI entry point: `uvicorn civicline.api.app:app`."""

from civicline.api.factory import create_app

app = create_app()
