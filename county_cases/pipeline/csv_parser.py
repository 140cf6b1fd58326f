"""Character-scanning CSV parser for the feed's quoting dialect."""

from __future__ import annotations

from enum import Enum

from county_cases.common.models import RawRow

QUOTE = '"'
DELIMITER = ","
LINE_BREAKS = "\r\n"


class ScanState(Enum):
    FIELD_START = "field_start"
    UNQUOTED = "unquoted"
    QUOTED = "quoted"
    QUOTE_IN_QUOTED = "quote_in_quoted"


def parse_csv(text: str) -> list[RawRow]:
    """Split ``text`` into rows of fields.

    A field opening with a double quote runs until the matching closing quote;
    inside it ``""`` is a literal quote and delimiters and line breaks are kept
    as-is. An unterminated quoted field runs to the end of input. Rows break on
    ``\\n``, ``\\r\\n`` or ``\\r``. The header row is returned like any other row.
    """
    rows: list[RawRow] = [[]]
    field: list[str] = []
    state = ScanState.FIELD_START
    length = len(text)
    i = 0

    while i < length:
        ch = text[i]

        if state is ScanState.QUOTED:
            if ch == QUOTE:
                state = ScanState.QUOTE_IN_QUOTED
            else:
                field.append(ch)
            i += 1
            continue

        if state is ScanState.QUOTE_IN_QUOTED:
            if ch == QUOTE:
                field.append(QUOTE)
                state = ScanState.QUOTED
                i += 1
                continue
            # The previous quote closed the field; anything before the next
            # boundary is kept literally.
            state = ScanState.UNQUOTED

        if ch == DELIMITER:
            rows[-1].append("".join(field))
            field = []
            state = ScanState.FIELD_START
        elif ch in LINE_BREAKS:
            rows[-1].append("".join(field))
            field = []
            rows.append([])
            state = ScanState.FIELD_START
            if ch == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
        elif ch == QUOTE and state is ScanState.FIELD_START:
            state = ScanState.QUOTED
        else:
            field.append(ch)
            state = ScanState.UNQUOTED
        i += 1

    rows[-1].append("".join(field))
    return rows


def data_row_count(rows: list[RawRow]) -> int:
    """Rows after the header, ignoring the blank row left by a trailing line break."""
    count = max(len(rows) - 1, 0)
    if count and rows[-1] == [""]:
        count -= 1
    return count
