import re
from typing import Optional


def normalize_whitespace(text: str) -> str:
    if not text:
        return ""
    text = str(text).strip()
    text = re.sub(r"\s+", " ", text)
    return text


def normalize_name(text: str) -> str:
    """
    Clean variety / warehouse names:
    - strip, collapse spaces
    - uppercase
    """
    text = normalize_whitespace(text)
    return text.upper()


def normalize_code(text: Optional[str]) -> Optional[str]:
    """
    Location, outturn and lorry codes: uppercase, no spaces.
    Empty input gives None so that a missing code never becomes a key segment.
    """
    if text is None:
        return None
    text = str(text).strip().replace(" ", "").upper()
    return text or None
