"""
File name sanitization for article titles.
"""

# Characters Windows refuses in file names
FORBIDDEN_CHARS = ('<', '>', ':', '"', '/', '\\', '|', '?', '*')
LINE_BREAKS = ('\r', '\n')


def sanitize_filename(name: str) -> str:
    """
    Make a title safe to use as a file name component.

    Forbidden path characters become hyphens, line breaks are dropped and
    surrounding whitespace is trimmed. The result is stable under repeated
    application.

    Args:
        name: Raw title text

    Returns:
        str: Sanitized file name stem (may be empty)
    """
    for char in FORBIDDEN_CHARS:
        name = name.replace(char, '-')
    for char in LINE_BREAKS:
        name = name.replace(char, '')
    return name.strip()
