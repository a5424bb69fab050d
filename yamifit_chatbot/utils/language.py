"""Arabic script detection used for the language hint and the fallback reply."""

ARABIC_RATIO_THRESHOLD = 0.30

# Arabic, Arabic Supplement, Arabic Extended-A
ARABIC_RANGES = (
    (0x0600, 0x06FF),
    (0x0750, 0x077F),
    (0x08A0, 0x08FF),
)


def is_arabic_char(ch: str) -> bool:
    code = ord(ch)
    return any(low <= code <= high for low, high in ARABIC_RANGES)


def detect_arabic(text: str) -> bool:
    """
    True when more than 30% of the non-whitespace code points in `text`
    fall in the Arabic blocks. Empty or whitespace-only input is not Arabic.
    """
    if not text:
        return False
    visible = [ch for ch in text if not ch.isspace()]
    if not visible:
        return False
    arabic = sum(1 for ch in visible if is_arabic_char(ch))
    return arabic / len(visible) > ARABIC_RATIO_THRESHOLD
