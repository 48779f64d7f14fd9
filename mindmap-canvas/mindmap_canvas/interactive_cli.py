# mindmap-canvas/mindmap_canvas/interactive_cli.py
import asyncio
import shlex
import sys
from typing import List, Optional

from .commands_core import (
    build_controller, format_path, format_scene_lines,
    get_general_help_text, get_specific_help_text,
)
from .controller import MindMapController
from .display_utils import Colors, formatted_print, USE_COLORS
from .errors import CommandStatus
from .models import ROOT_ID

try:
    import readline
except ImportError:
    readline = None # Tab completion will be disabled if readline is not available

# Global state for interactive session
current_controller: Optional[MindMapController] = None
current_node_id: Optional[str] = None
_rl_completion_matches: List[str] = []


def _report(status: str, msg: str) -> bool:
    if status == CommandStatus.SUCCESS:
        formatted_print(msg, level="SUCCESS")
        return True
    level = "WARNING" if status in (CommandStatus.EMPTY_BATCH, CommandStatus.PENDING, CommandStatus.DISCARDED) else "ERROR"
    formatted_print(msg, level=level)
    return False


def _require_map() -> bool:
    if current_controller is None or current_controller.store is None:
        formatted_print("No map loaded. Use 'new \"Topic\"' first.", level="WARNING")
        return False
    return True


def _default_target() -> str:
    """Current node if it still exists, otherwise the root."""
    global current_node_id
    if current_node_id and current_controller.store.find(current_node_id) is None:
        current_node_id = None
    return current_node_id or ROOT_ID


def cmd_new(args_list: List[str]):
    global current_node_id
    empty = "--empty" in args_list
    topic = " ".join(arg for arg in args_list if arg != "--empty")
    if not topic.strip():
        formatted_print(get_specific_help_text("new"), level="NONE", use_prefix=False)
        return
    if empty:
        status, _, msg = current_controller.new_empty_map(topic)
    else:
        formatted_print(f"Generating subtopics for '{topic}'...", level="INFO")
        status, _, msg = asyncio.run(current_controller.new_map(topic))
    if _report(status, msg):
        current_node_id = None


def cmd_add(args_list: List[str]):
    if not _require_map():
        return
    parent_id = None
    text_parts = []
    i = 0
    while i < len(args_list):
        if args_list[i] == "-p":
            if i + 1 < len(args_list):
                parent_id = args_list[i + 1]
                i += 1
            else:
                formatted_print("-p option requires parent ID.", level="ERROR")
                return
        else:
            text_parts.append(args_list[i])
        i += 1
    if not text_parts:
        formatted_print(get_specific_help_text("add"), level="NONE", use_prefix=False)
        return

    text = " ".join(text_parts)
    target = parent_id or _default_target()
    labels = text.split(";") if ";" in text else text
    status, _, msg = current_controller.add_nodes(target, labels)
    _report(status, msg)


def cmd_expand(args_list: List[str]):
    if not _require_map():
        return
    if len(args_list) > 1:
        formatted_print(get_specific_help_text("expand"), level="NONE", use_prefix=False)
        return
    target = args_list[0] if args_list else _default_target()
    formatted_print(f"Generating subtopics for node '{target}'...", level="INFO")
    status, _, msg = asyncio.run(current_controller.expand(target))
    _report(status, msg)


def cmd_delete(args_list: List[str]):
    if not _require_map():
        return
    if len(args_list) != 1:
        formatted_print(get_specific_help_text("delete"), level="NONE", use_prefix=False)
        return
    status, _, msg = current_controller.delete(args_list[0])
    _report(status, msg)


def cmd_collapse(args_list: List[str]):
    if not _require_map():
        return
    if len(args_list) > 1:
        formatted_print(get_specific_help_text("collapse"), level="NONE", use_prefix=False)
        return
    target = args_list[0] if args_list else _default_target()
    status, _, msg = current_controller.toggle_collapse(target)
    _report(status, msg)


def cmd_move(args_list: List[str]):
    if not _require_map():
        return
    if len(args_list) != 3:
        formatted_print(get_specific_help_text("move"), level="NONE", use_prefix=False)
        return
    try:
        x, y = float(args_list[1]), float(args_list[2])
    except ValueError:
        formatted_print("Coordinates must be numbers.", level="ERROR")
        return
    status, _, msg = current_controller.move(args_list[0], x, y)
    _report(status, msg)


def cmd_rename(args_list: List[str]):
    if not _require_map():
        return
    if len(args_list) < 2:
        formatted_print(get_specific_help_text("rename"), level="NONE", use_prefix=False)
        return
    status, _, msg = current_controller.rename(args_list[0], " ".join(args_list[1:]))
    _report(status, msg)


def cmd_go(args_list: List[str]):
    global current_node_id
    if not _require_map():
        return
    store = current_controller.store
    if not args_list:
        node = store.find(_default_target())
        path = store.find_path(node.id)
        formatted_print(f"Current node: '{node.text}' (ID: {node.id})", level="INFO")
        formatted_print(f"Path: {format_path(path)}", level="DETAIL", use_prefix=False, indent=1)
        formatted_print(f"Children count: {len(node.children)}", level="DETAIL", use_prefix=False, indent=1)
        return

    target = args_list[0]
    if target == "/":
        current_node_id = None
        formatted_print("Moved to the root.", level="INFO")
    elif target == "..":
        parent = store.find_parent(_default_target())
        if parent is None:
            formatted_print("Already at the root.", level="WARNING")
            return
        current_node_id = None if parent.id == ROOT_ID else parent.id
        formatted_print(f"Moved up to '{parent.text}' (ID: {parent.id})", level="INFO")
    else:
        node = store.find(target)
        if node is None:
            formatted_print(f"Node with ID '{target}' not found.", level="ERROR")
            return
        current_node_id = None if node.id == ROOT_ID else node.id
        formatted_print(f"Moved to '{node.text}' (ID: {node.id})", level="INFO")


def cmd_tree(args_list: List[str]):
    if not _require_map():
        return
    formatted_print("Mind Map Tree:", level="INFO")
    formatted_print(current_controller.export_text(), level="NONE", use_prefix=False)


def cmd_layout(args_list: List[str]):
    if not _require_map():
        return
    if args_list:
        status, _, msg = current_controller.set_layout_mode(args_list[0].lower())
        if not _report(status, msg):
            return
    scene = current_controller.scene
    formatted_print(f"Visible nodes ({scene.mode} layout):", level="INFO")
    for line in format_scene_lines(scene):
        formatted_print(line, level="NONE", use_prefix=False, indent=1)


def cmd_search(args_list: List[str]):
    if not _require_map():
        return
    if not args_list:
        formatted_print(get_specific_help_text("search"), level="NONE", use_prefix=False)
        return
    query = " ".join(args_list)
    results = current_controller.find_by_text(query)
    formatted_print(f"Found {len(results)} node(s) containing '{query}'.", level="INFO")
    for node, path in results:
        formatted_print(f"Node: '{node.text}' (ID: {node.id})", level="RESULT", use_prefix=False, indent=1)
        formatted_print(f"Path: {format_path(path)}", level="DETAIL", use_prefix=False, indent=2)


def cmd_zoom(args_list: List[str]):
    if len(args_list) not in (1, 3):
        formatted_print(get_specific_help_text("zoom"), level="NONE", use_prefix=False)
        return
    try:
        values = [float(arg) for arg in args_list]
    except ValueError:
        formatted_print("Zoom factor and coordinates must be numbers.", level="ERROR")
        return
    factor = values[0]
    if factor <= 0:
        formatted_print("Zoom factor must be positive.", level="ERROR")
        return
    px, py = (values[1], values[2]) if len(values) == 3 else (0.0, 0.0)
    current_controller.viewport.zoom_by(px, py, factor)
    cmd_view([])


def cmd_pan(args_list: List[str]):
    if len(args_list) != 2:
        formatted_print(get_specific_help_text("pan"), level="NONE", use_prefix=False)
        return
    try:
        dx, dy = float(args_list[0]), float(args_list[1])
    except ValueError:
        formatted_print("Offsets must be numbers.", level="ERROR")
        return
    current_controller.viewport.pan(dx, dy)
    cmd_view([])


def cmd_view(args_list: List[str]):
    viewport = current_controller.viewport
    formatted_print(f"Zoom: {viewport.scale:.3f}  Pan: ({viewport.offset_x:.1f}, {viewport.offset_y:.1f})", level="INFO")


def cmd_export(args_list: List[str]):
    if not _require_map():
        return
    content = current_controller.export_text()
    if not args_list:
        formatted_print(content, level="NONE", use_prefix=False)
        return
    try:
        with open(args_list[0], 'w', encoding='utf-8') as f:
            f.write(content + "\n")
        formatted_print(f"Mind map exported as text tree to: {args_list[0]}", level="SUCCESS")
    except OSError as e:
        formatted_print(f"Error writing export file '{args_list[0]}': {e}", level="ERROR")


def cmd_help(args_list: List[str]):
    if not args_list:
        help_string = get_general_help_text()
        lines = help_string.strip().split('\n')
        formatted_print(lines[0], level="HEADER", use_prefix=False)
        if len(lines) > 1:
            formatted_print(lines[1], level="INFO", use_prefix=False, indent=1)
        for line_content in lines[2:]:
            if line_content.startswith("  "):
                formatted_print(line_content, level="COMMAND_NAME", use_prefix=False)
            elif line_content.strip():
                formatted_print(line_content.strip(), level="INFO", use_prefix=False, indent=1)
        return

    help_text = get_specific_help_text(args_list[0])
    if "Unknown command" in help_text:
        formatted_print(help_text, level="ERROR")
        return
    for line_content in help_text.strip().split('\n'):
        if line_content.lower().startswith("usage:"):
            formatted_print(line_content, level="USAGE", use_prefix=True)
        else:
            formatted_print(line_content, level="NONE", use_prefix=False, indent=1)


def cmd_exit(args_list: List[str]):
    sys.exit(0)

# Command mapping for interactive session
interactive_commands_map = {
    "new": cmd_new,
    "add": cmd_add,
    "expand": cmd_expand,
    "delete": cmd_delete, "del": cmd_delete,
    "collapse": cmd_collapse,
    "move": cmd_move, "mv": cmd_move,
    "rename": cmd_rename, "edit": cmd_rename,
    "go": cmd_go, "cd": cmd_go,
    "tree": cmd_tree,
    "layout": cmd_layout, "ls": cmd_layout,
    "search": cmd_search, "find": cmd_search,
    "zoom": cmd_zoom,
    "pan": cmd_pan,
    "view": cmd_view,
    "export": cmd_export,
    "help": cmd_help, "h": cmd_help,
    "exit": cmd_exit, "quit": cmd_exit,
}


def execute_line(line: str) -> None:
    """Parses and runs one shell line."""
    if not line.strip():
        return
    try:
        parts = shlex.split(line)
    except ValueError as e:
        formatted_print(f"Could not parse command: {e}", level="ERROR")
        return
    command_name, command_args = parts[0].lower(), parts[1:]
    if command_name in interactive_commands_map:
        interactive_commands_map[command_name](command_args)
    else:
        formatted_print(f"Unknown command: '{command_name}'. Type 'help'.", level="ERROR")


def _command_completer(text: str, state: int) -> Optional[str]:
    """Readline completer for command names and, after a command, node ids."""
    global _rl_completion_matches
    if state == 0:
        buffer = readline.get_line_buffer() if readline else ""
        if " " in buffer.lstrip() and current_controller and current_controller.store:
            candidates = [node.id for node in current_controller.store.iter_nodes()]
        else:
            candidates = list(interactive_commands_map.keys())
        _rl_completion_matches = [c for c in candidates if c.startswith(text)]
    try:
        return _rl_completion_matches[state]
    except IndexError:
        return None


def setup_readline_completion():
    if readline:
        readline.set_completer(_command_completer)
        readline.parse_and_bind("tab: complete")
        readline.set_completer_delims(" \t\n;")


def _prompt() -> str:
    if current_controller is None or current_controller.store is None:
        location = "no map"
    else:
        node = current_controller.store.find(_default_target())
        location = node.text if len(node.text) <= 30 else node.text[:27] + "..."
    if USE_COLORS and sys.stdout.isatty():
        return f"{Colors.OKGREEN}mindmap{Colors.ENDC} [{Colors.OKCYAN}{location}{Colors.ENDC}]> "
    return f"mindmap [{location}]> "


def interactive_session(offline: bool = False, topic: Optional[str] = None,
                        controller: Optional[MindMapController] = None):
    global current_controller, current_node_id
    current_controller = controller or build_controller(offline=offline)
    current_node_id = None

    setup_readline_completion()
    formatted_print("\nWelcome to MindMap Canvas Interactive Mode!", level="HEADER", use_prefix=False)
    if topic:
        cmd_new([topic])
    else:
        formatted_print("Start with 'new \"Topic\"' or type 'help'.", level="INFO")

    while True:
        try:
            execute_line(input(_prompt()))
        except EOFError:
            formatted_print("\nExiting...", level="INFO")
            break
        except KeyboardInterrupt:
            formatted_print("\nInterrupted. Type 'exit' or 'quit'.", level="WARNING")
            continue
        except SystemExit:
            formatted_print("Exiting application...", level="INFO")
            break
