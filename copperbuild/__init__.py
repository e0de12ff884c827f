"""copperbuild — native backend resolver for the ai-copper glue library."""

__version__ = "0.1.0"
