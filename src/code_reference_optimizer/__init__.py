"""Code Reference Optimizer - minimal code context for LLM assistants via MCP."""

__version__ = "1.2.3"
