"""pipeflow: run declarative graphs of processes, pipes and files."""

from .config import load_flow, parse_flow
from .errors import FlowError
from .executor import Executor
from .registry import Registry, build_registry
from .settings import FlowSettings, resolve_settings
from .streams import Endpoint, StreamWiring

__all__ = [
    "__version__",
    "Endpoint",
    "Executor",
    "FlowError",
    "FlowSettings",
    "Registry",
    "StreamWiring",
    "build_registry",
    "load_flow",
    "parse_flow",
    "resolve_settings",
]

__version__ = "0.1.0"
