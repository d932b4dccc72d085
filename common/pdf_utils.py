# common/pdf_utils.py
import logging
from io import BytesIO

from django.http import HttpResponse
from django.template.loader import render_to_string
from xhtml2pdf import pisa

log = logging.getLogger(__name__)


def render_html_to_pdf_bytes(template_name: str, context: dict) -> bytes | None:
    """
    Render a Django template to PDF bytes using xhtml2pdf.
    Returns None when xhtml2pdf reports errors.
    """
    html = render_to_string(template_name, context)

    result = BytesIO()
    pisa_status = pisa.CreatePDF(html, dest=result, encoding="utf-8")

    if pisa_status.err:
        log.error("xhtml2pdf failed on %s (%s errors)", template_name, pisa_status.err)
        return None

    return result.getvalue()


def pdf_response(pdf_bytes: bytes, filename: str) -> HttpResponse:
    resp = HttpResponse(pdf_bytes, content_type="application/pdf")
    resp["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp
