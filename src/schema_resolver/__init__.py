"""Schema Resolver - resolve a PostgreSQL schema into a typed, replayable model."""

__version__ = "0.1.0"

from .base.models import SchemaModel
from .config import ResolverConfig, load_config
from .resolver import generate_spec, resolve
from .serialization import dump_spec, load_spec

__all__ = [
    "__version__",
    "SchemaModel",
    "ResolverConfig",
    "load_config",
    "resolve",
    "generate_spec",
    "dump_spec",
    "load_spec",
]
