"""Text sanitization for free text typed on the floor."""

import html

MAX_NOTE_LENGTH = 500


def sanitize_text(value: str | None) -> str | None:
    """HTML-escape user-supplied text so it is safe to render in a browser."""
    if value is None:
        return None
    return html.escape(value, quote=True)


def sanitize_note(value: str | None) -> str | None:
    """Trim, length-limit and escape a kitchen note. Blank notes become None."""
    if value is None:
        return None
    value = value.strip()[:MAX_NOTE_LENGTH]
    return sanitize_text(value) or None
