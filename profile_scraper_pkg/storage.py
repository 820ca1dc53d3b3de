"""Durable file stores behind the work queue.

- ResultStore: append-only CSV of completed records (success or error).
- PendingSource: the mutable list of URLs still to scrape, either one URL
  per line or a CSV with a url/link/site column.
- BlockLog: append-only CSV of URLs observed behind a block page.

Appends are flushed and fsynced before returning; rewrites go through a
temp file and `os.replace` so a crash never leaves a half-written list.
"""
import csv
import io
import os
import re
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set

from . import config
from .errors import SourceNotFound, SourceUnreadable, StoreWriteError
from .scraper_logging import get_logger

logger = get_logger(__name__)

_SCHEME_RE = re.compile(r"^https?://", re.I)
_TABULAR_SUFFIXES = {".csv", ".tsv"}


def _looks_like_url(cell: str) -> bool:
    return "." in cell or "/" in cell


def normalize_url(raw: Optional[str]) -> str:
    """Trim and default the scheme to https://; empty input stays empty."""
    url = (raw or "").strip()
    if not url:
        return ""
    if not _SCHEME_RE.match(url):
        url = f"https://{url}"
    return url


def atomic_write_text(path: Path, text: str) -> None:
    """Replace `path` with `text` via a synced temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.stem + "_", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise StoreWriteError(f"Could not rewrite {path}: {e}") from e


def append_csv_rows(path: Path, headers: Sequence[str], rows: Iterable[Sequence[str]]) -> None:
    """Append rows, writing the header first if the file is new or empty."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_header = not path.exists() or path.stat().st_size == 0
        with open(path, "a", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            if write_header:
                writer.writerow(headers)
            for row in rows:
                writer.writerow(row)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise StoreWriteError(f"Could not append to {path}: {e}") from e


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceUnreadable(str(path), str(e)) from e


def read_csv_rows(path: Path) -> List[Dict[str, str]]:
    """Read a headed CSV into dicts; unreadable or undecodable files are fatal."""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return list(csv.DictReader(f))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise SourceUnreadable(str(path), str(e)) from e


class ResultStore:
    """Append-only CSV of completed records; the source of truth for "done"."""

    def __init__(self, path: str, headers: Sequence[str] = config.RESULT_HEADERS, url_column: str = "profile_url"):
        self.path = Path(path)
        self.headers = list(headers)
        self.url_column = url_column

    def ensure_initialized(self) -> None:
        if not self.path.exists():
            append_csv_rows(self.path, self.headers, [])

    def append(self, row: Sequence[str]) -> None:
        append_csv_rows(self.path, self.headers, [row])

    def completed_urls(self) -> Set[str]:
        if not self.path.exists():
            return set()
        rows = read_csv_rows(self.path)
        return {normalize_url(row.get(self.url_column)) for row in rows if row.get(self.url_column)}


class PendingSource:
    """The list of URLs not yet processed.

    The format is detected from the content: tabular when the first line is
    a header naming a url/link/site column (or, for a .csv/.tsv file, a
    multi-column header with no URL in it), otherwise one URL per line.
    Rewrites keep surviving rows verbatim, including any extra columns of a
    tabular file.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def read_urls(self) -> List[str]:
        """Return the raw URL values in file order (not normalized)."""
        if not self.path.exists():
            raise SourceNotFound(str(self.path))
        text = read_text(self.path)
        if not text.strip():
            return []
        if self._is_tabular(text):
            header, rows, column, _ = self._parse_table(text)
            if column is None:
                logger.warning("No url/link/site column in pending list", path=str(self.path), header=header)
                return []
            return [row[column] if column < len(row) else "" for row in rows]
        return [line.strip() for line in text.splitlines()]

    def keep_only(self, urls: Iterable[str]) -> None:
        """Rewrite to the first row of each URL in `urls`, dropping the rest."""
        self._rewrite(set(urls))

    def remove(self, url: str) -> None:
        """Rewrite without rows for `url`; a missing file or URL is a no-op."""
        if not self.path.exists():
            return
        target = normalize_url(url)
        text = read_text(self.path)
        if not text.strip():
            return
        if self._is_tabular(text):
            header, rows, column, dialect = self._parse_table(text)
            if column is None:
                return
            kept = [r for r in rows if normalize_url(r[column] if column < len(r) else "") != target]
            if len(kept) == len(rows):
                return
            self._write_table(header, kept, dialect)
        else:
            lines = [line.strip() for line in text.splitlines()]
            kept = [line for line in lines if normalize_url(line) != target]
            if len(kept) == len(lines):
                return
            self._write_lines(kept)

    def _rewrite(self, survivors: Set[str]) -> None:
        text = read_text(self.path)
        if not text.strip():
            return
        seen: Set[str] = set()

        def keep(raw: str) -> bool:
            url = normalize_url(raw)
            if url not in survivors or url in seen:
                return False
            seen.add(url)
            return True

        if self._is_tabular(text):
            header, rows, column, dialect = self._parse_table(text)
            if column is None:
                return
            self._write_table(header, [r for r in rows if keep(r[column] if column < len(r) else "")], dialect)
        else:
            self._write_lines([line.strip() for line in text.splitlines() if keep(line)])

    def _is_tabular(self, text: str) -> bool:
        first = text.lstrip().splitlines()[0]
        header = next(csv.reader([first], self._sniff(first)), [])
        if self._url_column(header) is not None:
            return True
        # A spreadsheet export whose header lacks a URL column; plain URL
        # lists stay line-oriented whatever their suffix.
        cells = [c.strip() for c in header if c.strip()]
        return (
            self.path.suffix.lower() in _TABULAR_SUFFIXES
            and len(cells) > 1
            and not any(_looks_like_url(c) for c in cells)
        )

    @staticmethod
    def _sniff(sample: str):
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|")
        except csv.Error:
            return csv.excel

    @staticmethod
    def _url_column(header: List[str]) -> Optional[int]:
        names = [h.strip().lower() for h in header]
        for candidate in config.URL_COLUMNS:
            if candidate in names:
                return names.index(candidate)
        return None

    def _parse_table(self, text: str):
        dialect = self._sniff(text.lstrip().splitlines()[0])
        rows = [r for r in csv.reader(io.StringIO(text), dialect) if r]
        header, body = rows[0], rows[1:]
        return header, body, self._url_column(header), dialect

    def _write_table(self, header: List[str], rows: List[List[str]], dialect) -> None:
        buf = io.StringIO()
        writer = csv.writer(buf, delimiter=dialect.delimiter, lineterminator="\n")
        writer.writerow(header)
        writer.writerows(rows)
        atomic_write_text(self.path, buf.getvalue())

    def _write_lines(self, lines: List[str]) -> None:
        atomic_write_text(self.path, "\n".join(lines) + ("\n" if lines else ""))


class BlockLog:
    """Append-only record of block detections; repeated detections log again."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, url: Optional[str]) -> None:
        observed_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        with self._lock:
            append_csv_rows(self.path, config.BLOCK_LOG_HEADERS, [[observed_at, url or ""]])

    def urls(self) -> List[str]:
        if not self.path.exists():
            return []
        return [row.get("url") or "" for row in read_csv_rows(self.path)]
