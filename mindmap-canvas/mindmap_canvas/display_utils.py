# mindmap-canvas/mindmap_canvas/display_utils.py
import os
import sys


class Colors:
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

# NO_COLOR (https://no-color.org) disables colors regardless of the terminal
USE_COLORS = os.getenv("NO_COLOR") is None

_LEVEL_STYLES = {
    "INFO": (Colors.OKBLUE, "[INFO]"),
    "SUCCESS": (Colors.OKGREEN, "[OK]"),
    "WARNING": (Colors.WARNING, "[WARN]"),
    "ERROR": (Colors.FAIL, "[ERROR]"),
    "ACTION": (Colors.OKCYAN, "[?]"),
    "USAGE": (Colors.BOLD, "Usage:"),
    "HEADER": (Colors.HEADER + Colors.BOLD, ""),
    "COMMAND_NAME": (Colors.OKCYAN, ""),
    "RESULT": (Colors.OKGREEN, ""),
    "DETAIL": (Colors.DIM, ""),
    "NONE": ("", ""),
}


def formatted_print(message: str, level: str = "INFO", use_prefix: bool = True, indent: int = 0) -> None:
    """Prints a message with an optional level prefix, indentation and color."""
    color, prefix = _LEVEL_STYLES.get(level, _LEVEL_STYLES["NONE"])
    if level == "USAGE" and message.lower().startswith("usage:"):
        message = message[len("usage:"):].lstrip()
    text = f"{prefix} {message}" if use_prefix and prefix else message
    text = "  " * indent + text
    stream = sys.stderr if level == "ERROR" else sys.stdout
    if USE_COLORS and color and stream.isatty():
        text = f"{color}{text}{Colors.ENDC}"
    print(text, file=stream)
