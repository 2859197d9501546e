"""WebSocket connection handler and message router."""

import traceback

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from backend.api.schemas import OptimizerConfig
from backend.api.session import session
from backend.config import SNAPSHOT_INTERVAL
from backend.evolution.controller import NoDataError, OptimizationState
from backend.log import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """Manages active WebSocket connections."""

    def __init__(self):
        self.active_connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def send_json(self, websocket: WebSocket, data: dict):
        await websocket.send_json(data)


manager = ConnectionManager()


def _error(code: str, message: str, **extra) -> dict:
    return {"type": "error", "payload": {"code": code, "message": message, **extra}}


async def handle_websocket(websocket: WebSocket):
    """Main WebSocket endpoint handler."""
    await manager.connect(websocket)
    started_here = False

    try:
        while True:
            data = await websocket.receive_json()
            msg_type = data.get("type", "")
            payload = data.get("payload", {})

            try:
                if msg_type == "start_optimization":
                    started = await handle_start_optimization(websocket, payload)
                    started_here = started or started_here
                elif msg_type == "stop_optimization":
                    session.stop_optimization()
                    await send_status(websocket)
                elif msg_type == "boost":
                    if session.controller.boost():
                        await send_status(websocket)
                    else:
                        await manager.send_json(websocket, _error(
                            "NOT_RUNNING", "Optimizer is not running"))
                elif msg_type == "request_status":
                    await send_status(websocket)
                else:
                    await manager.send_json(websocket, _error(
                        "UNKNOWN_MESSAGE", f"Unknown type: {msg_type}"))
            except Exception as e:
                logger.exception("WebSocket handler failed for %s", msg_type)
                await manager.send_json(websocket, _error("HANDLER_ERROR", str(e)))

    except WebSocketDisconnect:
        # Runs launched from this connection die with it
        if started_here:
            session.stop_optimization()
        manager.disconnect(websocket)


async def send_status(websocket: WebSocket):
    await manager.send_json(websocket, {"type": "optimizer_snapshot", "payload": session.status()})


async def handle_start_optimization(websocket: WebSocket, payload: dict) -> bool:
    """Launch the optimizer and stream snapshots back to this client.

    Returns True if a run was started.
    """
    try:
        config = OptimizerConfig(**payload)
    except ValidationError as e:
        await manager.send_json(websocket, _error("INVALID_CONFIG", str(e)))
        return False

    last_best = {"fitness": None}

    async def on_generation(state: OptimizationState):
        improved = state.best_fitness != last_best["fitness"]
        last_best["fitness"] = state.best_fitness
        if improved or state.generation % SNAPSHOT_INTERVAL == 0:
            await send_status(websocket)

    async def on_complete(status: dict):
        await manager.send_json(websocket, {"type": "optimization_complete", "payload": status})

    try:
        status = session.start_optimization(config, on_generation=on_generation,
                                            on_complete=on_complete)
    except NoDataError as e:
        await manager.send_json(websocket, _error("NO_DATA", str(e)))
        return False
    except ValueError as e:
        await manager.send_json(websocket, _error(
            "OPTIMIZER_ERROR", str(e), traceback=traceback.format_exc()))
        return False

    await manager.send_json(websocket, {"type": "optimizer_snapshot",
                                        "payload": status})
    return True
