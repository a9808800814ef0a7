from typing import Callable, Iterable, List, Sequence, Tuple

from ..config import CSV_DELIMITER
from ..models import ReviewRecord
from ..utils.text import sanitize_field

# (header, accessor, is_numeric)
Column = Tuple[str, Callable[[ReviewRecord], object], bool]

PLAY_SCHEMA: List[Column] = [
    ("id", lambda r: r.id, False),
    ("userName", lambda r: r.author_name, False),
    ("content", lambda r: r.body, False),
    ("score", lambda r: r.rating, True),
    ("date", lambda r: r.submitted_at, False),
    ("thumbsUp", lambda r: r.thumbs_up, True),
    ("version", lambda r: r.version, False),
]

APPSTORE_SCHEMA: List[Column] = [
    ("id", lambda r: r.id, False),
    ("userName", lambda r: r.author_name, False),
    ("title", lambda r: r.title, False),
    ("content", lambda r: r.body, False),
    ("score", lambda r: r.rating, True),
    ("version", lambda r: r.version, False),
    ("date", lambda r: r.submitted_at, False),
]


def header(schema: Sequence[Column]) -> str:
    return CSV_DELIMITER.join(name for name, _, _ in schema)


def to_row(record: ReviewRecord, schema: Sequence[Column]) -> str:
    cells = []
    for _, get, numeric in schema:
        value = get(record)
        cells.append(str(int(value or 0)) if numeric else sanitize_field(value))
    return CSV_DELIMITER.join(cells)


def serialize(records: Iterable[ReviewRecord], schema: Sequence[Column]) -> str:
    """Header line, then one line per record in input order; ends with a newline."""
    lines = [header(schema)]
    lines.extend(to_row(r, schema) for r in records)
    return "\n".join(lines) + "\n"
