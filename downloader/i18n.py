import gettext
import os
from pathlib import Path


def get_translator():
    """Return a gettext translator based on DOWNLOADER_LANG, defaulting to English.

    If translation files are not available, falls back to no-op gettext.
    """
    lang = os.getenv("DOWNLOADER_LANG", "en")
    locales_dir = Path(__file__).parent / "locales"
    try:
        t = gettext.translation("downloader", localedir=str(locales_dir), languages=[lang])
        return t.gettext
    except OSError:
        return gettext.gettext


_ = get_translator()
