"""User message rendering for one source file."""

from __future__ import annotations

import base64


def build_user_message(file_name: str, language: str, payload: bytes) -> str:
    """Render the user turn: Base64 file content, or the empty-file instruction."""

    if not payload:
        return (
            f"File `{file_name}` is 0 bytes long.\n"
            f"Language used by the file: {language}\n"
            "Follow the empty-file output rules exactly:\n"
            f"File name: {file_name}\n"
            f"Language used by the file: {language}\n"
            "Purpose of the file: the file is empty, its purpose cannot be determined."
        )

    encoded = base64.b64encode(payload).decode("ascii")
    return (
        f"File `{file_name}` is transmitted Base64-encoded.\n"
        f"Language used by the file: {language}\n"
        "The encoded byte stream follows:\n\n"
        f"{encoded}"
    )


__all__ = ["build_user_message"]
