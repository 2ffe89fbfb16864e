"""Cleaners and validators for model-generated content."""

from ollama_code.validators.cleaner import CodeCleaner
from ollama_code.validators.filename import FileValidator
from ollama_code.validators.jsonparse import JSONValidator, find_balanced

__all__ = [
    "CodeCleaner",
    "FileValidator",
    "JSONValidator",
    "find_balanced",
]
