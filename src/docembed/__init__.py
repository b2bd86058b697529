"""docembed — documentation embedding and snapshot search."""

__version__ = "0.1.0"
