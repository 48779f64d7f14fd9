# mindmap-canvas/mindmap_canvas/__init__.py
from .config import LayoutConfig, settings
from .controller import ExpandState, MindMapController, RenderScene
from .errors import CollaboratorFailure, CommandStatus, MalformedTreeError, MindMapError
from .generation import GeminiGenerator, OutlineNode, StaticGenerator, TextGenerator
from .layout import LayoutEngine, LayoutResult
from .models import ROOT_ID, CounterIdGenerator, Node
from .node_store import NodeStore
from .viewport import ViewportController

__version__ = "0.1.0"
