import html
import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_text(value: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Sanitize free text (notes, reasons, imported cells) before it is stored.

    Escapes HTML special characters, strips control characters and surrounding
    whitespace. Returns None for None and for values that are empty after stripping.

    Raises:
        ValueError: If the text is longer than max_length
    """
    if value is None:
        return None

    value = str(value).strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    value = _CONTROL_CHARS.sub("", value)
    return html.escape(value, quote=True)
