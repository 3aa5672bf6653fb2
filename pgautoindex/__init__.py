"""Interactive PostgreSQL shell with workload-driven automatic index management."""

__version__ = "0.1.0"
__all__ = ["datastructures", "helper", "index", "shell"]