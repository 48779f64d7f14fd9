# mindmap-canvas/mindmap_canvas/commands_core.py
"""Pieces shared by the one-shot CLI, the interactive shell and the web backends."""
import logging
from typing import List, Optional

from .config import settings
from .controller import MindMapController, RenderScene
from .generation import GeminiGenerator, StaticGenerator, TextGenerator
from .layout import LayoutEngine
from .models import Node

logger = logging.getLogger(__name__)


def build_generator(offline: bool = False) -> TextGenerator:
    """Gemini when an API key is configured and not offline, else the static table."""
    api_key = settings.GEMINI_API_KEY
    if offline or not api_key:
        if not offline:
            logger.info("GEMINI_API_KEY not set; using offline label suggestions")
        return StaticGenerator()
    return GeminiGenerator(api_key, model=settings.GEMINI_MODEL, timeout=settings.GEMINI_TIMEOUT)


def build_controller(offline: bool = False, mode: Optional[str] = None) -> MindMapController:
    layout_engine = LayoutEngine(settings.layout_config(mode))
    return MindMapController(generator=build_generator(offline), layout_engine=layout_engine,
                             fallback_on_failure=settings.FALLBACK_ON_FAILURE)


def format_scene_lines(scene: Optional[RenderScene]) -> List[str]:
    """One line per visible node: id, rounded position and label."""
    if scene is None or not scene.nodes:
        return []
    id_width = max(len(node.id) for node in scene.nodes)
    lines = []
    for node in scene.nodes:
        marker = " [+]" if node.collapsed and node.has_children else ""
        lines.append(f"{node.id:<{id_width}}  ({node.x:8.1f}, {node.y:8.1f})  {node.text}{marker}")
    return lines


def format_path(path: List[Node]) -> str:
    return " -> ".join(node.text for node in path)

# --- Help Messages ---
detailed_help_messages = {
    "new": """Usage: new "Topic" [--empty]\nStarts a new mind map. Without --empty the map is filled from generated subtopics.""",
    "add": """Usage: add "Label" [; "Label" ...] [-p PARENT_ID]\nAdds child node(s). Separate several labels with ';'. Defaults to the current node (or the root).""",
    "expand": """Usage: expand [<NODE_ID>]\nAsks the text generator for subtopics and adds them under the node.""",
    "delete": """Usage: delete <NODE_ID>\nDeletes a node and its children. The root cannot be deleted.""",
    "collapse": """Usage: collapse <NODE_ID>\nHides or shows a node's children. Collapsing is non-destructive.""",
    "move": """Usage: move <NODE_ID> <X> <Y>\nPlaces a node at world coordinates until the next structural change.""",
    "rename": """Usage: rename <NODE_ID> "New Text"\nChanges the label of a node.""",
    "go": """Usage: go [<NODE_ID> | .. | /]\nChanges the current node (the default parent for 'add' and 'expand').""",
    "tree": """Usage: tree\nDisplays the visible mind map as a text tree.""",
    "layout": """Usage: layout [tree|radial]\nShows the laid-out position of every visible node, optionally switching layout mode.""",
    "search": """Usage: search <text>\nFinds nodes whose label contains the text.""",
    "zoom": """Usage: zoom <FACTOR> [<SCREEN_X> <SCREEN_Y>]\nZooms the view around a screen point (default: origin).""",
    "pan": """Usage: pan <DX> <DY>\nMoves the view by a screen-space offset.""",
    "view": """Usage: view\nShows the current zoom and pan.""",
    "export": """Usage: export [<file.txt>]\nPrints the text tree or writes it to a file.""",
    "help": """Usage: help [<command>]\nDisplays help.""",
    "exit": """Usage: exit\nExits the application.""",
}

help_aliases = {
    "ls": "layout",
    "del": "delete",
    "find": "search",
    "mv": "move",
    "edit": "rename",
    "cd": "go",
    "h": "help",
    "quit": "exit",
}


def get_general_help_text() -> str:
    lines = ["\nMindMap Canvas - Available Commands", "Type 'help <command>' for more details."]
    main_commands = sorted(detailed_help_messages.keys())
    all_command_names = list(detailed_help_messages.keys()) + list(help_aliases.keys())
    max_len = max(len(cmd) for cmd in all_command_names)

    for cmd_name in main_commands:
        summary = detailed_help_messages[cmd_name].split('\n')[0]
        aliases_for_this_cmd = sorted(alias for alias, target in help_aliases.items() if target == cmd_name)
        alias_info = f" (Aliases: {', '.join(aliases_for_this_cmd)})" if aliases_for_this_cmd else ""
        lines.append(f"  {cmd_name:<{max_len + 2}} {summary.replace('Usage: ', '')}{alias_info}")

    lines.append("\nThe root node always has ID 'root'. Node positions are world coordinates.")
    return "\n".join(lines)


def get_specific_help_text(command_name: str) -> str:
    command_name = command_name.lower()
    main_command_name = help_aliases.get(command_name, command_name)
    if main_command_name in detailed_help_messages:
        help_text = detailed_help_messages[main_command_name].strip()
        aliases_for_this_cmd = sorted(alias for alias, target in help_aliases.items() if target == main_command_name)
        if aliases_for_this_cmd:
            help_text += f"\n(Aliases: {', '.join(aliases_for_this_cmd)})"
        return help_text
    return f"Unknown command '{command_name}'. Type 'help' for a list."
