"""PreTackler: batch streaming summaries from a chat-completion endpoint."""

__version__ = "0.1.0"

__all__ = ["__version__"]
