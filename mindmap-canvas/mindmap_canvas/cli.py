# mindmap-canvas/mindmap_canvas/cli.py
import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .commands_core import build_controller, format_scene_lines, get_general_help_text, get_specific_help_text
from .display_utils import formatted_print
from .errors import CommandStatus
from .logging_config import setup_logging


def handle_generate(args: argparse.Namespace) -> int:
    """Builds a map for a topic and prints its layout."""
    controller = build_controller(offline=args.offline, mode="radial" if args.radial else None)
    status, _, msg = asyncio.run(controller.new_map(args.topic, depth=args.depth))
    if status != CommandStatus.SUCCESS:
        formatted_print(msg, level="ERROR")
        return 1

    if args.json:
        payload = {"scene": controller.scene.to_dict(), "tree": controller.root.to_dict()}
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    formatted_print(msg, level="SUCCESS")
    formatted_print(f"Layout ({controller.layout_config.mode}):", level="HEADER", use_prefix=False)
    for line in format_scene_lines(controller.scene):
        formatted_print(line, level="NONE", use_prefix=False, indent=1)
    if args.tree:
        formatted_print("", level="NONE", use_prefix=False)
        formatted_print(controller.export_text(), level="NONE", use_prefix=False)
    return 0


def handle_interactive(args: argparse.Namespace) -> int:
    from .interactive_cli import interactive_session
    interactive_session(offline=args.offline, topic=args.topic)
    return 0


def handle_help(args: argparse.Namespace) -> int:
    if args.command_name:
        help_text = get_specific_help_text(args.command_name[0])
        if "Unknown command" in help_text:
            formatted_print(help_text, level="ERROR")
            return 1
        for line in help_text.strip().split('\n'):
            if line.lower().startswith("usage:"):
                formatted_print(line, level="USAGE")
            else:
                formatted_print(line, level="NONE", use_prefix=False, indent=1)
        return 0
    formatted_print(get_general_help_text(), level="NONE", use_prefix=False)
    formatted_print("\nOne-shot commands: generate, interactive, help. "
                    "Use 'mindmap-canvas <command> --help' for options.", level="INFO", indent=1)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mindmap-canvas", description="Mind map tree engine (one-shot)")
    parser.add_argument("--log-level", help="Logging level (default: MINDMAP_LOG_LEVEL or INFO).")

    subparsers = parser.add_subparsers(dest="command", title="Available commands")
    subparsers.required = True

    p_gen = subparsers.add_parser("generate", help="Generate a mind map for a topic and print its layout.")
    p_gen.add_argument("topic", help="Topic of the root node.")
    p_gen.add_argument("--radial", action="store_true", help="Use the radial layout instead of the top-down tree.")
    p_gen.add_argument("--json", action="store_true", help="Print the scene and tree as JSON.")
    p_gen.add_argument("--tree", action="store_true", help="Also print the text tree.")
    p_gen.add_argument("--offline", action="store_true", help="Do not call the text-generation service.")
    p_gen.add_argument("--depth", type=int, default=2, choices=(0, 1, 2, 3),
                       help="Outline levels to insert below the root (default: 2).")
    p_gen.set_defaults(func=handle_generate)

    p_int = subparsers.add_parser("interactive", help="Start the interactive shell.")
    p_int.add_argument("topic", nargs="?", help="Optional topic to start with.")
    p_int.add_argument("--offline", action="store_true", help="Do not call the text-generation service.")
    p_int.set_defaults(func=handle_interactive)

    p_help = subparsers.add_parser("help", help="Show help for shell commands.")
    p_help.add_argument("command_name", nargs="*", help="Command to get help for.")
    p_help.set_defaults(func=handle_help)
    return parser


def main_cli(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main_cli())
