# common/excel_utils.py
import io

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def excel_response(filename, headers, rows, sheet_title="Sheet1"):
    """
    One-sheet workbook: bold header row + data rows, as a download.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title

    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in rows:
        ws.append(row)

    for idx, header in enumerate(headers, start=1):
        width = max([len(str(header))] + [len(str(r[idx - 1] or "")) for r in rows])
        ws.column_dimensions[get_column_letter(idx)].width = min(width + 2, 50)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    resp = HttpResponse(buf.read(), content_type=XLSX_CONTENT_TYPE)
    resp["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp
