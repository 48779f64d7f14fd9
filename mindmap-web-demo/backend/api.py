# mindmap-web-demo/backend/api.py
import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request
from flask_cors import CORS # For Cross-Origin Resource Sharing

from mindmap_canvas.commands_core import build_controller
from mindmap_canvas.controller import MindMapController
from mindmap_canvas.errors import CommandStatus, category_of, http_status_of
from mindmap_canvas.logging_config import setup_logging

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app) # This will enable CORS for all routes

# --- Global state for the API (one map per process) ---
api_controller: Optional[MindMapController] = None
# --- End Global State ---


def get_controller() -> MindMapController:
    global api_controller
    if api_controller is None:
        api_controller = build_controller()
    return api_controller


def get_map_as_dict(controller: MindMapController) -> Optional[Dict[str, Any]]:
    """Tree plus laid-out scene, or None when no map is loaded."""
    if controller.store is None:
        return None
    return {
        "tree": controller.root.to_dict(),
        "scene": controller.scene.to_dict() if controller.scene else None,
    }


def result_response(status: str, msg: str, success_code: int = 200, **extra: Any) -> Tuple[Any, int]:
    body = {"status": status, "message": msg}
    if status == CommandStatus.SUCCESS:
        body.update(extra)
        body["map"] = get_map_as_dict(get_controller())
        return jsonify(body), success_code
    body["error"] = category_of(status)
    return jsonify(body), http_status_of(status)


def missing_field(field: str) -> Tuple[Any, int]:
    return jsonify({"status": CommandStatus.INVALID_LABEL, "error": category_of(CommandStatus.INVALID_LABEL),
                    "message": f"Missing '{field}' in request body"}), 400

# --- API Endpoints ---

@app.route('/map/new', methods=['POST'])
async def api_new_map():
    data = request.get_json(silent=True) or {}
    if 'topic' not in data:
        return missing_field('topic')
    controller = get_controller()
    if data.get('empty'):
        status, _, msg = controller.new_empty_map(data['topic'])
    else:
        try:
            depth = int(data.get('depth', 2))
        except (TypeError, ValueError):
            return result_response(CommandStatus.INVALID_OPTION, "'depth' must be an integer.")
        status, _, msg = await controller.new_map(data['topic'], depth=depth)
    return result_response(status, msg, success_code=201)


@app.route('/map', methods=['GET'])
def api_get_map():
    controller = get_controller()
    if controller.store is None:
        return jsonify({"status": CommandStatus.SUCCESS, "message": "No map loaded.", "map": None}), 200
    return result_response(CommandStatus.SUCCESS, "Current map data.", viewport=controller.viewport.to_dict())


@app.route('/map/layout', methods=['POST'])
def api_set_layout():
    data = request.get_json(silent=True) or {}
    if 'mode' not in data:
        return missing_field('mode')
    controller = get_controller()
    if controller.store is None:
        return result_response(CommandStatus.NO_MAP, "No map loaded.")
    status, _, msg = controller.set_layout_mode(data['mode'])
    return result_response(status, msg)


@app.route('/node/add', methods=['POST'])
def api_add_node():
    data = request.get_json(silent=True) or {}
    labels = data.get('labels', data.get('text'))
    if labels is None:
        return missing_field('text')
    parent_id = data.get('parent_id') or "root"

    status, nodes, msg = get_controller().add_nodes(parent_id, labels)
    node_ids = [node.id for node in nodes] if status == CommandStatus.SUCCESS else []
    return result_response(status, msg, success_code=201, node_ids=node_ids)


@app.route('/node/<node_id>/expand', methods=['POST'])
async def api_expand_node(node_id: str):
    status, nodes, msg = await get_controller().expand(node_id)
    node_ids = [node.id for node in nodes] if status == CommandStatus.SUCCESS else []
    return result_response(status, msg, success_code=201, node_ids=node_ids)


@app.route('/node/<node_id>', methods=['DELETE'])
def api_delete_node(node_id: str):
    status, _, msg = get_controller().delete(node_id)
    return result_response(status, msg)


@app.route('/node/<node_id>/collapse', methods=['POST'])
def api_toggle_collapse(node_id: str):
    status, node, msg = get_controller().toggle_collapse(node_id)
    collapsed = node.collapsed if status == CommandStatus.SUCCESS else None
    return result_response(status, msg, collapsed=collapsed)


@app.route('/node/<node_id>', methods=['PUT']) # For editing
def api_edit_node(node_id: str):
    data = request.get_json(silent=True) or {}
    if 'text' not in data:
        return missing_field('text')
    status, old_text, msg = get_controller().rename(node_id, data['text'])
    return result_response(status, msg, old_text=old_text)


@app.route('/node/<node_id>/position', methods=['POST'])
def api_move_node(node_id: str):
    data = request.get_json(silent=True) or {}
    try:
        x, y = float(data['x']), float(data['y'])
    except (KeyError, TypeError, ValueError):
        return result_response(CommandStatus.INVALID_OPTION, "Numeric 'x' and 'y' are required.")
    status, _, msg = get_controller().move(node_id, x, y)
    return result_response(status, msg)


@app.route('/map/search', methods=['GET'])
def api_search_map():
    search_text = request.args.get('text')
    if not search_text:
        return result_response(CommandStatus.INVALID_OPTION, "Missing 'text' query parameter")

    results = get_controller().find_by_text(search_text)
    api_results = [{"node": node.to_dict(), "path": [n.id for n in path]} for node, path in results]
    return jsonify({"status": CommandStatus.SUCCESS, "message": f"Found {len(api_results)} node(s).",
                    "results": api_results}), 200


@app.route('/map/export', methods=['GET'])
def api_export_map():
    controller = get_controller()
    if controller.store is None:
        return result_response(CommandStatus.NO_MAP, "No map loaded to export.")
    return jsonify({"status": CommandStatus.SUCCESS, "message": "Text tree export.",
                    "content": controller.export_text()}), 200


@app.route('/status', methods=['GET'])
def api_status_check():
    """A simple endpoint to check if the API is running."""
    controller = get_controller()
    return jsonify({
        "status": "ok",
        "message": "MindMap API is running.",
        "map_loaded": controller.store is not None,
        "layout_mode": controller.layout_config.mode,
    }), 200


if __name__ == '__main__':
    setup_logging()
    app.run(debug=True, host='0.0.0.0', port=5001)
