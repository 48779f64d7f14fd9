# mindmap-web-demo/backend/websocket_server.py
"""Live canvas channel: clients send JSON intents, every client receives the new scene.

Message shapes:
    -> {"action": "add", "parent_id": "root", "text": "Basics"}
    <- {"type": "result", "action": "add", "status": "success", "message": "..."}
    <- {"type": "scene", "scene": {...}, "viewport": {...}}

`expand` runs as a background task so the map stays editable while the
text generator is working; its result arrives as a later "result" message.
"""
import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from mindmap_canvas.commands_core import build_controller
from mindmap_canvas.controller import MindMapController
from mindmap_canvas.errors import CommandStatus, category_of
from mindmap_canvas.logging_config import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI()

ws_controller: Optional[MindMapController] = None


def get_controller() -> MindMapController:
    global ws_controller
    if ws_controller is None:
        ws_controller = build_controller()
    return ws_controller


class ConnectionManager:
    def __init__(self):
        self.active: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active.add(websocket)
        logger.info("WebSocket connection accepted from: %s", websocket.client)

    def disconnect(self, websocket: WebSocket) -> None:
        self.active.discard(websocket)

    async def send(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
        try:
            await websocket.send_json(payload)
        except (WebSocketDisconnect, RuntimeError):
            logger.info("Dropping closed connection %s", websocket.client)
            self.disconnect(websocket)

    async def broadcast(self, payload: Dict[str, Any]) -> None:
        for websocket in list(self.active):
            await self.send(websocket, payload)


manager = ConnectionManager()
_expand_tasks: Set[asyncio.Task] = set()


def scene_payload(controller: MindMapController) -> Dict[str, Any]:
    return {
        "type": "scene",
        "scene": controller.scene.to_dict() if controller.store is not None and controller.scene else None,
        "viewport": controller.viewport.to_dict(),
    }


def result_payload(action: str, status: str, msg: str, **extra: Any) -> Dict[str, Any]:
    payload = {"type": "result", "action": action, "status": status, "message": msg}
    if status != CommandStatus.SUCCESS:
        payload["error"] = category_of(status)
    payload.update(extra)
    return payload


def _number(data: Dict[str, Any], key: str, default: Optional[float] = None) -> float:
    value = data.get(key, default)
    if value is None:
        raise ValueError(f"Missing numeric '{key}'.")
    return float(value)

def _node_id(data: Dict[str, Any], key: str = "node_id", default: str = "") -> str:
    value = data.get(key) or default
    return value if isinstance(value, str) else str(value)

# --- Intent handlers (synchronous ones; new and expand are awaited separately) ---

def _handle_add(controller: MindMapController, data: Dict[str, Any]):
    labels = data.get("labels", data.get("text", ""))
    return controller.add_nodes(_node_id(data, "parent_id", "root"), labels)


def _handle_delete(controller: MindMapController, data: Dict[str, Any]):
    return controller.delete(_node_id(data))


def _handle_collapse(controller: MindMapController, data: Dict[str, Any]):
    return controller.toggle_collapse(_node_id(data))


def _handle_move(controller: MindMapController, data: Dict[str, Any]):
    return controller.move(_node_id(data), _number(data, "x"), _number(data, "y"))


def _handle_rename(controller: MindMapController, data: Dict[str, Any]):
    return controller.rename(_node_id(data), data.get("text", ""))


def _handle_layout(controller: MindMapController, data: Dict[str, Any]):
    if controller.store is None:
        return CommandStatus.NO_MAP, None, "No mind map loaded."
    return controller.set_layout_mode(data.get("mode", ""))


def _handle_zoom(controller: MindMapController, data: Dict[str, Any]):
    controller.viewport.wheel(_number(data, "x", 0.0), _number(data, "y", 0.0), _number(data, "delta_y"))
    return CommandStatus.SUCCESS, None, f"Zoom is now {controller.viewport.scale:.3f}."


def _handle_pan(controller: MindMapController, data: Dict[str, Any]):
    controller.viewport.pan(_number(data, "dx"), _number(data, "dy"))
    return CommandStatus.SUCCESS, None, "View panned."


def _handle_center(controller: MindMapController, data: Dict[str, Any]):
    controller.center_on_root(_number(data, "width"), _number(data, "height"))
    return CommandStatus.SUCCESS, None, "View centered on the root."


SYNC_HANDLERS: Dict[str, Callable] = {
    "add": _handle_add,
    "delete": _handle_delete,
    "collapse": _handle_collapse,
    "move": _handle_move,
    "rename": _handle_rename,
    "layout": _handle_layout,
    "zoom": _handle_zoom,
    "pan": _handle_pan,
    "center": _handle_center,
}


async def run_expand(websocket: WebSocket, node_id: str) -> None:
    controller = get_controller()
    status, nodes, msg = await controller.expand(node_id)
    node_ids = [node.id for node in nodes] if status == CommandStatus.SUCCESS else []
    await manager.send(websocket, result_payload("expand", status, msg, node_id=node_id, node_ids=node_ids))
    if status == CommandStatus.SUCCESS:
        await manager.broadcast(scene_payload(controller))


async def handle_message(websocket: WebSocket, data: Any) -> None:
    controller = get_controller()
    if not isinstance(data, dict) or not isinstance(data.get("action"), str):
        await manager.send(websocket, result_payload("", CommandStatus.INVALID_OPTION, "Message must be an object with an 'action'."))
        return
    action = data["action"]

    if action == "new":
        if data.get("empty"):
            status, _, msg = controller.new_empty_map(data.get("topic", ""))
        else:
            try:
                depth = int(data.get("depth", 2))
            except (TypeError, ValueError):
                await manager.send(websocket, result_payload(action, CommandStatus.INVALID_OPTION, "'depth' must be an integer."))
                return
            status, _, msg = await controller.new_map(data.get("topic", ""), depth=depth)
        await manager.send(websocket, result_payload(action, status, msg))
        if status == CommandStatus.SUCCESS:
            await manager.broadcast(scene_payload(controller))
        return

    if action == "expand":
        task = asyncio.create_task(run_expand(websocket, _node_id(data)))
        _expand_tasks.add(task)
        task.add_done_callback(_expand_tasks.discard)
        return

    if action == "scene":
        await manager.send(websocket, scene_payload(controller))
        return

    handler = SYNC_HANDLERS.get(action)
    if handler is None:
        await manager.send(websocket, result_payload(action, CommandStatus.INVALID_OPTION, f"Unknown action '{action}'."))
        return
    try:
        status, _, msg = handler(controller, data)
    except (TypeError, ValueError) as e:
        status, msg = CommandStatus.INVALID_OPTION, str(e)
    await manager.send(websocket, result_payload(action, status, msg))
    if status == CommandStatus.SUCCESS:
        await manager.broadcast(scene_payload(controller))


@app.websocket("/ws")
async def websocket_canvas_endpoint(websocket: WebSocket):
    await manager.connect(websocket)
    try:
        await manager.send(websocket, scene_payload(get_controller()))
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                await manager.send(websocket, result_payload("", CommandStatus.INVALID_OPTION, "Message is not valid JSON."))
                continue
            await handle_message(websocket, data)
    except WebSocketDisconnect:
        logger.info("Client %s disconnected.", websocket.client)
    finally:
        manager.disconnect(websocket)


@app.get("/scene")
async def get_scene():
    return scene_payload(get_controller())


@app.get("/status")
async def get_status():
    controller = get_controller()
    return {
        "status": "ok",
        "message": "MindMap WebSocket Server is running.",
        "connections": len(manager.active),
        "map_loaded": controller.store is not None,
    }


if __name__ == "__main__":
    import uvicorn
    setup_logging()
    uvicorn.run(
        "websocket_server:app", # app_module:app_instance_name
        host="0.0.0.0",
        port=8000,
        reload=True # Enable reloader
    )
