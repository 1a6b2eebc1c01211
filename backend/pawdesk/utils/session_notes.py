"""
Session title/notes helpers.

Sessions store ``title`` and ``notes`` in separate columns. Older rows packed the
title into the notes text as ``"<title>\\n\\n<body>"``; these helpers convert
between the two shapes and normalize free text coming from requests.
"""
from typing import Optional, Tuple


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trim a free-text value; blank strings become None."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def split_legacy_notes(notes: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Split legacy ``"<title>\\n\\n<body>"`` notes into (title, body).

    A title is only recognized when the first line is non-blank and the second
    line is blank; anything else is treated as body-only text.

    Examples:
        "Recall work\\n\\nGood focus"  -> ("Recall work", "Good focus")
        "Recall work\\n\\n"            -> ("Recall work", None)
        "Just a note"                 -> (None, "Just a note")
    """
    if not notes:
        return None, None

    lines = notes.split("\n")
    if len(lines) > 1 and lines[0].strip() and not lines[1].strip():
        title = lines[0].strip()
        body = clean_text("\n".join(lines[2:]))
        return title, body

    return None, clean_text(notes)


def join_legacy_notes(title: Optional[str], body: Optional[str]) -> Optional[str]:
    """Inverse of split_legacy_notes, for consumers that still read the combined text."""
    title = clean_text(title)
    body = clean_text(body)
    if title:
        return f"{title}\n\n{body or ''}"
    return body


def append_note(existing: Optional[str], note: str) -> str:
    """Append a paragraph to existing notes, separated by a blank line."""
    if existing:
        return f"{existing}\n\n{note}"
    return note
