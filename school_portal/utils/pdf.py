"""PDF inspection (pdfplumber) and download watermarking (pypdf)."""

from __future__ import annotations

import io
from datetime import datetime
from typing import Optional

import pdfplumber
from pypdf import PdfReader, PdfWriter
from pypdf.annotations import FreeText

_LINE_HEIGHT = 14
_MARGIN = 32


def inspect_pdf(payload: bytes) -> int:
    """Open `payload` with pdfplumber and return its page count.

    Raises ValueError when the bytes are not a readable PDF.
    """
    try:
        with pdfplumber.open(io.BytesIO(payload)) as pdf:
            pages = len(pdf.pages)
    except Exception as exc:
        raise ValueError(f"unreadable PDF: {exc}") from exc
    if pages < 1:
        raise ValueError("PDF has no pages")
    return pages


def watermark_lines(
    name: str,
    email: Optional[str],
    downloaded_at: datetime,
    verification_code: Optional[str],
    ip_address: Optional[str],
) -> list[str]:
    lines = [f"Diunduh oleh {name}" + (f" ({email})" if email else "")]
    lines.append(f"Pada {downloaded_at.strftime('%d/%m/%Y %H:%M:%S')} UTC")
    if verification_code:
        lines.append(f"Kode verifikasi: {verification_code}")
    if ip_address:
        lines.append(f"IP: {ip_address}")
    return lines


def apply_watermark(payload: bytes, lines: list[str]) -> bytes:
    """Stamp `lines` on every page (bottom-left and top-right) and return new bytes."""
    reader = PdfReader(io.BytesIO(payload))
    writer = PdfWriter()
    writer.append(reader)
    text = "\n".join(lines)
    # the top block omits the timestamp line
    top_text = "\n".join(line for line in lines if not line.startswith("Pada "))
    block_width = 7 * max(len(line) for line in lines)
    for index, page in enumerate(writer.pages):
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        bottom = FreeText(
            text=text,
            rect=(_MARGIN, 12, _MARGIN + block_width, 12 + _LINE_HEIGHT * len(lines)),
            font="Helvetica",
            font_size="10pt",
            font_color="666666",
            border_color=None,
            background_color=None,
        )
        top_lines = top_text.count("\n") + 1
        left = max(_MARGIN, width - _MARGIN - block_width)
        top = FreeText(
            text=top_text,
            rect=(left, height - 42 - _LINE_HEIGHT * top_lines, width - _MARGIN, height - 28),
            font="Helvetica",
            font_size="10pt",
            font_color="b3b3b3",
            border_color=None,
            background_color=None,
        )
        writer.add_annotation(page_number=index, annotation=bottom)
        writer.add_annotation(page_number=index, annotation=top)
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()
