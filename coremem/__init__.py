"""Persistent, labeled memory blocks for LLM-driven agents."""

__version__ = "0.1.0"
