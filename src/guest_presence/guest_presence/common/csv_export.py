from __future__ import annotations

import csv
import io
from typing import Any, Iterable, Sequence

UTF8_BOM = "\ufeff"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).replace("\r\n", "\n").replace("\r", "\n")


def build_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Render rows as CSV text.

    Fields holding a comma, a double quote or a line break are quoted with
    inner quotes doubled. Records are separated by CRLF.
    """

    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow([_cell(h) for h in headers])
    for row in rows:
        writer.writerow([_cell(v) for v in row])
    return out.getvalue()
