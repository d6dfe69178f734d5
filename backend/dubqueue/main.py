"""
dubqueue HTTP control service.

Thin adapter over the render queue and preset store. No compilation or
queue logic lives in the routes.
"""

from typing import Optional

from fastapi import FastAPI

from . import __version__
from .config import AppConfig, load_config
from .jobs import RenderQueue
from .presets import PresetStore
from .routes import presets, queue
from .services import build_preset_store, build_queue


def create_app(
    config: Optional[AppConfig] = None,
    render_queue: Optional[RenderQueue] = None,
    preset_store: Optional[PresetStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Configuration (defaults to load_config())
        render_queue: Pre-built queue, e.g. with a fake executor in tests
        preset_store: Pre-built preset store
    """
    config = config or load_config()
    preset_store = preset_store or (render_queue.preset_store if render_queue else build_preset_store(config))
    render_queue = render_queue or build_queue(config, preset_store)

    app = FastAPI(title="dubqueue", version=__version__)
    app.state.config = config
    app.state.preset_store = preset_store
    app.state.render_queue = render_queue

    app.include_router(presets.router)
    app.include_router(queue.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app
