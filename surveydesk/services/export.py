# surveydesk/services/export.py
import io
import re
from datetime import datetime

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import IllegalCharacterError

from surveydesk.core.errors import InternalError
from surveydesk.services.report import TabularReport

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_NAME = "Responses"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\r\n\t]+')


def _cell(value):
    # Excel cannot store timezone-aware datetimes
    if isinstance(value, datetime):
        return value.strftime(TIME_FORMAT)
    # control characters are not valid in worksheet XML
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def _force_text(worksheet) -> None:
    """Keep every string cell a literal string.

    openpyxl turns values starting with `=` into formulas; respondent input
    must land in the sheet exactly as submitted.
    """
    for row in worksheet.iter_rows():
        for cell in row:
            if isinstance(cell.value, str):
                cell.data_type = "s"


def report_to_xlsx(report: TabularReport) -> bytes:
    """Serialize a compiled report into an .xlsx workbook with one sheet."""
    table = [report.header] + [[_cell(v) for v in row] for row in report.rows]
    df = pd.DataFrame(table)

    buf = io.BytesIO()
    try:
        with pd.ExcelWriter(buf, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=SHEET_NAME, header=False, index=False)
            _force_text(writer.sheets[SHEET_NAME])
    except (IllegalCharacterError, ValueError, TypeError) as e:
        raise InternalError(f"Could not build the report workbook: {e}", code="report_serialization_error") from e
    return buf.getvalue()


def report_filename(title: str, now: datetime) -> str:
    safe_title = _UNSAFE_FILENAME_CHARS.sub("_", title).strip() or "survey"
    return f"{safe_title}_{int(now.timestamp() * 1000)}.xlsx"


def report_caption(title: str, response_count: int) -> str:
    return f"[{title}] survey results report\n{response_count} response(s) attached."
