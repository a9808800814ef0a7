import re
import time
from datetime import datetime
from pathlib import Path
from typing import List, Union

from ..errors import ExportError, ExportNotFoundError, InvalidInputError
from ..models import ExportInfo
from ..utils.logger import get_logger

_SAFE_NAME = re.compile(r'^[A-Za-z0-9._-]+\.csv$')

logger = get_logger("exports")


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value, i = float(size), 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[i]}"


def play_export_name(app_id: str) -> str:
    return f"{app_id}_reviews_{int(time.time() * 1000)}.csv"


def appstore_export_name(app_id: str) -> str:
    return f"appstore_{app_id}_reviews_{int(time.time() * 1000)}.csv"


def _iso_time(ts: float) -> str:
    return datetime.fromtimestamp(ts).isoformat()


class ExportStore:
    """Flat-file CSV exports under one directory. Files are created once and never rewritten."""

    def __init__(self, export_dir: Union[str, Path]):
        self.export_dir = Path(export_dir)

    def write(self, file_name: str, text: str) -> Path:
        if not _SAFE_NAME.match(file_name or ""):
            raise InvalidInputError(f"Invalid export file name: {file_name}")
        path = self.export_dir / file_name
        if path.resolve().parent != self.export_dir.resolve():
            raise InvalidInputError(f"Export file must stay inside the export directory: {file_name}")
        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "x", encoding="utf-8", newline="") as f:
                f.write(text)
        except FileExistsError as e:
            raise ExportError(f"Export file already exists: {file_name}") from e
        except OSError as e:
            raise ExportError(f"Failed to export reviews to CSV: {e}") from e
        logger.info(f"Saved export to {path}")
        return path

    def stats(self, path: Union[str, Path]) -> ExportInfo:
        path = Path(path)
        try:
            st = path.stat()
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ExportError(f"Failed to get export statistics: {e}") from e
        # Header line plus the empty piece after the trailing newline
        review_count = max(len(text.split("\n")) - 2, 0)
        return ExportInfo(
            file_path=str(path),
            file_name=path.name,
            file_size=st.st_size,
            file_size_formatted=format_file_size(st.st_size),
            review_count=review_count,
            created_at=_iso_time(getattr(st, "st_birthtime", st.st_ctime)),
            modified_at=_iso_time(st.st_mtime),
        )

    def list_exports(self) -> List[dict]:
        if not self.export_dir.exists():
            return []
        out = []
        try:
            for path in self.export_dir.glob("*.csv"):
                st = path.stat()
                out.append({
                    "file_name": path.name,
                    "file_path": str(path),
                    "file_size": st.st_size,
                    "file_size_formatted": format_file_size(st.st_size),
                    "created_at": _iso_time(getattr(st, "st_birthtime", st.st_ctime)),
                    "modified_at": _iso_time(st.st_mtime),
                    "_mtime": st.st_mtime,
                })
        except OSError as e:
            raise ExportError(f"Failed to list exports: {e}") from e
        out.sort(key=lambda x: x["_mtime"], reverse=True)
        for item in out:
            del item["_mtime"]
        return out

    def resolve(self, file_name: str) -> Path:
        if not file_name or not _SAFE_NAME.match(file_name):
            raise InvalidInputError("Filename must be a valid CSV file")
        path = self.export_dir / file_name
        if not path.is_file():
            raise ExportNotFoundError("The requested CSV file does not exist")
        return path
