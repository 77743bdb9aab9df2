# roomrelay/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomrelay.core import state
from roomrelay.core.config import settings
from roomrelay.core.logging import setup_logging
from roomrelay.api.routes import root, health, metrics, rooms
from roomrelay.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(title="Room Relay")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(rooms.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info(
        "🚀 Room relay starting - history limit %d, send timeout %.1fs",
        settings.HISTORY_LIMIT,
        settings.SEND_TIMEOUT_SECONDS,
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Room relay stopping - %d open connections", len(state.connection_manager))
    await state.connection_manager.close()


def run() -> None:
    import uvicorn
    uvicorn.run("roomrelay.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
