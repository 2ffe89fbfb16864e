"""Ollama-Code-Py: intent-driven coding assistant runtime."""

__version__ = "0.3.0"
