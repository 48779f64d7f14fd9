# mindmap-canvas/mindmap_canvas/errors.py
from typing import Dict


class CommandStatus:
    SUCCESS = "success"
    PARENT_NOT_FOUND = "parent_not_found"
    NODE_NOT_FOUND = "not_found"
    INVALID_LABEL = "invalid_label"
    EMPTY_BATCH = "empty_batch"
    INVALID_OPTION = "invalid_option"
    ROOT_DELETION_FORBIDDEN = "root_deletion_forbidden"
    PENDING = "pending" # An expand for the same node is still awaiting generation
    DISCARDED = "discarded" # Generation finished for a node that no longer exists
    COLLABORATOR_FAILURE = "collaborator_failure"
    NO_MAP = "no_map"

# Result tuple structure used by the store and the controller:
# (status: CommandStatus, data: Any, message: str)

# Error taxonomy categories
NOT_FOUND = "NotFound"
INVALID_INPUT = "InvalidInput"
ROOT_PROTECTED = "RootProtected"
COLLABORATOR = "CollaboratorFailure"
MALFORMED_TREE = "MalformedTree"

_CATEGORY_BY_STATUS: Dict[str, str] = {
    CommandStatus.PARENT_NOT_FOUND: NOT_FOUND,
    CommandStatus.NODE_NOT_FOUND: NOT_FOUND,
    CommandStatus.DISCARDED: NOT_FOUND,
    CommandStatus.NO_MAP: NOT_FOUND,
    CommandStatus.INVALID_LABEL: INVALID_INPUT,
    CommandStatus.EMPTY_BATCH: INVALID_INPUT,
    CommandStatus.INVALID_OPTION: INVALID_INPUT,
    CommandStatus.PENDING: INVALID_INPUT,
    CommandStatus.ROOT_DELETION_FORBIDDEN: ROOT_PROTECTED,
    CommandStatus.COLLABORATOR_FAILURE: COLLABORATOR,
}

_HTTP_STATUS_BY_STATUS: Dict[str, int] = {
    CommandStatus.SUCCESS: 200,
    CommandStatus.PARENT_NOT_FOUND: 404,
    CommandStatus.NODE_NOT_FOUND: 404,
    CommandStatus.DISCARDED: 410,
    CommandStatus.NO_MAP: 404,
    CommandStatus.INVALID_LABEL: 400,
    CommandStatus.EMPTY_BATCH: 400,
    CommandStatus.INVALID_OPTION: 400,
    CommandStatus.PENDING: 409,
    CommandStatus.ROOT_DELETION_FORBIDDEN: 403,
    CommandStatus.COLLABORATOR_FAILURE: 502,
}


def category_of(status: str) -> str:
    """Maps a command status to its error category, or '' for success."""
    return _CATEGORY_BY_STATUS.get(status, "")


def http_status_of(status: str) -> int:
    return _HTTP_STATUS_BY_STATUS.get(status, 500)


class MindMapError(Exception):
    """Base class for the conditions the core raises instead of reporting."""


class MalformedTreeError(MindMapError):
    """The tree violates the store invariants (cycle, duplicate id, runaway depth)."""
    category = MALFORMED_TREE

    def __init__(self, message: str, node_id: str = ""):
        super().__init__(message)
        self.node_id = node_id


class CollaboratorFailure(MindMapError):
    """The text-generation collaborator errored or its reply could not be read."""
    category = COLLABORATOR

    def __init__(self, message: str, topic: str = ""):
        super().__init__(message)
        self.topic = topic
