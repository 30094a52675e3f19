#!/usr/bin/env python3
"""
IronWars Run Server

HTTP front end for one RunProgression. Presentation clients drive the run
through JSON endpoints and follow notifications over Server-Sent Events.

Usage:
    python web/server.py

Then open http://localhost:8080/api/run
"""

import asyncio
import json
import logging
import os
import random
import sys
from typing import Any, Dict, Optional

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
import uvicorn

from packages.ironwars import (
    ContentCatalog, ContentError, EngineConfig, JsonSaveStore, NotificationBus,
    NotificationType, RelicEngine, RunProgression, load_config,
)

logger = logging.getLogger("ironwars.web")


# ============================================================================
# SETUP
# ============================================================================

def build_progression(config: EngineConfig, seed: Optional[int] = None) -> RunProgression:
    """Wire catalog, relic engine, save store and bus from config."""
    catalog = ContentCatalog.from_json(config.content_path) if config.content_path \
        else ContentCatalog.default()
    rng = random.Random(seed)
    bus = NotificationBus()
    engine = RelicEngine(catalog, rng=rng, bus=bus)
    store = JsonSaveStore(config.save_path)
    return RunProgression(catalog, engine, store, bus=bus, config=config, rng=rng)


def run_payload(progression: RunProgression) -> Dict[str, Any]:
    """Current run state plus the map view a client needs to draw it."""
    state = progression.get_run_state()
    if state is None:
        return {"active": False}
    stage = progression.get_current_stage()
    return {
        "active": True,
        "state": state.to_dict(),
        "stage": stage.to_dict() if stage else None,
        "accessible_node_ids": progression.get_accessible_node_ids(),
    }


def error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# ============================================================================
# APP
# ============================================================================

def create_app(progression: Optional[RunProgression] = None,
               config: Optional[EngineConfig] = None) -> FastAPI:
    """Build the API around a progression (a fresh one from config if omitted)."""
    if progression is None:
        progression = build_progression(config or load_config())

    app = FastAPI(title="IronWars Run Server")
    app.state.progression = progression

    @app.get("/api/run")
    async def get_run():
        """Current run state."""
        return JSONResponse(run_payload(progression))

    @app.post("/api/run/start")
    async def start_run(request: Request):
        """Start a new run.

        Request body (all optional):
        {"faction_id": "cog_dominion", "difficulty": 0, "commander_override": null}
        """
        try:
            body = await request.json()
        except json.JSONDecodeError:
            body = {}
        if not isinstance(body, dict):
            return error("Request body must be a JSON object", 400)

        kwargs = {}
        if body.get("faction_id"):
            kwargs["faction_id"] = body["faction_id"]
        try:
            kwargs["difficulty"] = int(body.get("difficulty", 0))
        except (TypeError, ValueError):
            return error("difficulty must be an integer", 400)
        if body.get("commander_override"):
            kwargs["commander_override"] = body["commander_override"]

        try:
            progression.start_new_run(**kwargs)
        except ContentError as e:
            logger.error("Cannot start run: %s", e)
            return error(str(e), 500)
        return JSONResponse(run_payload(progression))

    @app.post("/api/run/load")
    async def load_run():
        if not progression.load_saved_run():
            return error("No saved run", 404)
        return JSONResponse(run_payload(progression))

    @app.post("/api/run/abandon")
    async def abandon_run():
        return JSONResponse({"abandoned": progression.abandon_run()})

    @app.post("/api/nodes/{node_id}/move")
    async def move_to_node(node_id: str):
        if not progression.has_active_run():
            return error("No active run", 409)
        if not progression.move_to_node(node_id):
            return error(f"Node {node_id} is not accessible", 409)
        return JSONResponse(run_payload(progression))

    @app.post("/api/nodes/{node_id}/complete")
    async def complete_node(node_id: str):
        if not progression.has_active_run():
            return error("No active run", 409)
        completion = progression.complete_node(node_id)
        if completion is None:
            return error(f"Node {node_id} cannot be completed", 409)
        payload = run_payload(progression)
        payload["completion"] = completion.to_dict()
        return JSONResponse(payload)

    @app.post("/api/relics/{relic_id}")
    async def take_relic(relic_id: str):
        """Take a relic (e.g. a reward choice)."""
        if not progression.has_active_run():
            return error("No active run", 409)
        if not progression.add_relic(relic_id):
            return error(f"Cannot add relic {relic_id}", 409)
        return JSONResponse(run_payload(progression))

    @app.get("/api/stages/{index}")
    async def get_stage(index: int):
        stage = progression.get_stage_snapshot(index)
        if stage is None:
            return error(f"Unknown stage {index}", 404)
        return JSONResponse(stage.to_dict())

    @app.get("/api/modifiers")
    async def get_modifiers():
        engine = progression.relic_engine
        return JSONResponse({
            "relics": engine.get_active_relic_ids(),
            "modifiers": engine.get_modifiers().to_dict(),
        })

    @app.get("/api/notifications")
    async def get_notifications(type: Optional[str] = None):
        """Notification history, optionally filtered by type."""
        try:
            notification_type = NotificationType(type) if type else None
        except ValueError:
            return error(f"Unknown notification type {type}", 400)
        history = progression.bus.get_history(notification_type)
        return JSONResponse([n.to_dict() for n in history])

    @app.get("/api/stream")
    async def stream_notifications(request: Request):
        """Server-Sent Events stream of notifications as they are emitted."""
        queue: asyncio.Queue = asyncio.Queue()

        def forward(notification):
            queue.put_nowait(notification)

        async def event_generator():
            progression.bus.on(None, forward)
            try:
                while not await request.is_disconnected():
                    try:
                        notification = await asyncio.wait_for(queue.get(), timeout=2)
                    except asyncio.TimeoutError:
                        continue
                    yield f"data: {json.dumps(notification.to_dict(), default=str)}\n\n"
            finally:
                progression.bus.off(None, forward)

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            }
        )

    return app


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print(f"""
    ========================================
    IronWars Run Server
    ========================================

    API URL: http://localhost:8080/api/run

    Save file:
    {config.save_path}

    Press Ctrl+C to stop.
    ========================================
    """)

    uvicorn.run(
        create_app(config=config),
        host="0.0.0.0",
        port=8080,
        log_level="info",
    )
