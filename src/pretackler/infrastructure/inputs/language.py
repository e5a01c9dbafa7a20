"""File-extension language labels included in each user message."""

from __future__ import annotations

import mimetypes
from pathlib import Path

UNKNOWN_LANGUAGE = "unknown"

_EXTENSION_LANGUAGES: dict[str, str] = {
    "md": "Markdown",
    "markdown": "Markdown",
    "txt": "Plain text",
    "rs": "Rust",
    "py": "Python",
    "js": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript/TSX",
    "jsx": "JavaScript/JSX",
    "go": "Go",
    "java": "Java",
    "c": "C",
    "cpp": "C++",
    "cxx": "C++",
    "cc": "C++",
    "hpp": "C++",
    "hxx": "C++",
    "h": "C/C++ header",
    "cs": "C#",
    "swift": "Swift",
    "kt": "Kotlin",
    "kts": "Kotlin",
    "php": "PHP",
    "rb": "Ruby",
    "scala": "Scala",
    "lua": "Lua",
    "sh": "Shell",
    "bash": "Shell",
    "ps1": "PowerShell",
    "html": "HTML",
    "htm": "HTML",
    "css": "CSS",
    "scss": "SCSS/SASS",
    "sass": "SCSS/SASS",
    "less": "LESS",
    "json": "JSON",
    "toml": "TOML",
    "yaml": "YAML",
    "yml": "YAML",
    "ini": "INI",
    "env": "Environment variables",
    "lock": "Lock file",
    "xml": "XML",
    "sql": "SQL",
    "csv": "CSV",
    "tsv": "TSV",
    "bin": "Binary",
    "wasm": "WebAssembly",
    "exe": "Executable",
    "dll": "Dynamic library",
}

_MIME_LANGUAGES: dict[str, str] = {
    "application/json": "JSON",
    "text/plain": "Plain text",
    "text/markdown": "Markdown",
    "text/css": "CSS",
    "text/html": "HTML",
}


def detect_language(path: Path) -> str:
    """Return a human-readable language label for `path`."""

    extension = path.suffix.lstrip(".").lower()
    if extension in _EXTENSION_LANGUAGES:
        return _EXTENSION_LANGUAGES[extension]

    mime_type, _ = mimetypes.guess_type(path.name)
    if mime_type is None:
        return UNKNOWN_LANGUAGE
    return _MIME_LANGUAGES.get(mime_type, UNKNOWN_LANGUAGE)


__all__ = ["UNKNOWN_LANGUAGE", "detect_language"]
