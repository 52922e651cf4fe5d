"""graphsift: text search, traversal and filtering for property graphs."""

__version__ = "0.1.0"

from graphsift.client import GraphQueryEngine
from graphsift.errors import ConfigurationError, InvalidCriteriaError, NotFoundError
from graphsift.models import Edge, EngineConfig, FilterResult, GraphSnapshot, Node

__all__ = [
    "ConfigurationError",
    "Edge",
    "EngineConfig",
    "FilterResult",
    "GraphQueryEngine",
    "GraphSnapshot",
    "InvalidCriteriaError",
    "Node",
    "NotFoundError",
    "__version__",
]
