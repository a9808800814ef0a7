import re
from typing import Optional

NULL_TOKEN = "Null"
BLANK_TOKEN = "Nan"

_SEMICOLON_RUN = re.compile(r';{2,}')

_SYMBOLS = re.compile(
    "["
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F300-\U0001F5FF"  # symbols & pictographs
    "\U0001F680-\U0001F6FF"  # transport & map
    "\U0001F1E0-\U0001F1FF"  # flags
    "\U00002600-\U000026FF"  # misc symbols
    "\U00002700-\U000027BF"  # dingbats
    "\U0001F900-\U0001F9FF"
    "\U0001FA70-\U0001FAFF"
    "\U0000FE00-\U0000FE0F"  # variation selectors
    "\U000020D0-\U000020FF"  # combining marks for symbols
    "\U0000200D"              # zero-width joiner
    "]"
)


def clean_text(s: str) -> str:
    if not s:
        return ""
    s = s.replace('\u200b', ' ').replace('\xa0', ' ')
    s = re.sub(r'\s+', ' ', s).strip()
    return s


def strip_symbols(s: str) -> str:
    return clean_text(_SYMBOLS.sub('', s or ""))


def clean_field(value: Optional[str]) -> str:
    """
    Normalize one exported text value.

    None becomes "Null", blank input becomes "Nan", anything else loses its
    emoji/pictograph characters and extra whitespace. Text made only of such
    characters comes out as "" rather than "Nan".
    """
    if value is None:
        return NULL_TOKEN
    text = str(value)
    if not text.strip():
        return BLANK_TOKEN
    return strip_symbols(text)


def escape_field(text: str) -> str:
    """
    Make a cleaned value safe for a ;;-delimited row.

    Semicolon runs collapse to one, and values with a semicolon at either edge
    are quoted, so a row always splits on the delimiter into exactly its
    column count. Commas, quotes and newlines are quoted too.
    """
    text = _SEMICOLON_RUN.sub(';', text)
    if (',' in text or '"' in text or '\n' in text
            or text.startswith(';') or text.endswith(';')):
        return '"' + text.replace('"', '""') + '"'
    return text


def sanitize_field(value: Optional[str]) -> str:
    return escape_field(clean_field(value))
