"""File name checks for model-suggested paths."""

import os
from pathlib import PurePath


INVALID_CHARS = ("<", ">", ":", '"', "|", "?", "*")


class FileValidator:
    """Validates and sanitizes paths proposed by the model."""

    def is_valid(self, name: str) -> bool:
        """Reject empty names and names with characters illegal on Windows.

        A drive prefix such as ``C:\\`` is tolerated so absolute Windows
        paths can still be written.
        """
        if not name or not name.strip():
            return False
        candidate = name
        if os.name == "nt" and len(candidate) > 2 and candidate[1] == ":" and candidate[0].isalpha():
            candidate = candidate[2:]
        return not any(char in candidate for char in INVALID_CHARS)

    def sanitize_path(self, path: str) -> str:
        """Normalize separators and drop parent-directory traversal."""
        normalized = os.path.normpath(path)
        parts = [p for p in PurePath(normalized).parts if p != ".."]
        if not parts:
            return ""
        return str(PurePath(*parts))

    def extract_filename(self, message: str) -> str:
        """Find the first word that looks like a file name in a message."""
        for word in message.split():
            word = word.strip("\"'`,;")
            if PurePath(word).suffix:
                return word
        return ""

    @staticmethod
    def is_directory(path: str) -> bool:
        return path.endswith("/") or path.endswith("\\")
