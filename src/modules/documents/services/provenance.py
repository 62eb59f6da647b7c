"""
Provenance embedding for PDF documents.

Stamps a small right-aligned footer on every page (document UID and token,
plus an optional signature line) and records the identifiers and a SHA-256
of the input bytes in the document metadata. The input is never modified;
a new PDF is returned.

The hash always covers the bytes handed in. Re-embedding a stored document
(download, sign) hashes the stored, already-stamped bytes, not the original
upload.
"""

import hashlib
import io
import logging
from datetime import datetime
from typing import List, Optional

from PyPDF2 import PageObject, PdfReader, PdfWriter
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from config import settings
from modules.documents.errors import ProvenanceError

logger = logging.getLogger(__name__)

FONT_NAME = "Helvetica"
FONT_SIZE = 6
FOOTER_Y = 20
RIGHT_MARGIN = 10
LINE_GAP = 3
SHORT_ID_LENGTH = 8

SIGNATURE_PREFIX = "digital_signature_"


def content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def signature_label(signature_data: str) -> str:
    """Short, human-readable certificate label for a signature token."""
    random_part = signature_data[len(SIGNATURE_PREFIX):] if signature_data.startswith(SIGNATURE_PREFIX) else signature_data
    return random_part.replace("-", "")[:8].upper()


def signature_info_for(signature_data: str) -> str:
    return f"Signé électroniquement: {signature_label(signature_data)}"


def footer_lines(page_number: int, total_pages: int, uid: str, token: str,
                 signature_info: Optional[str] = None, signed_at: str = "") -> List[str]:
    """Footer text for one page, bottom line first."""
    lines = [
        f"{settings.APP_NAME}: P{page_number}/{total_pages} "
        f"| UID:{uid[-SHORT_ID_LENGTH:]} | Token:{token[-SHORT_ID_LENGTH:]}"
    ]
    if signature_info:
        signer = signature_info.split(":", 1)[1].strip() if ":" in signature_info else signature_info.strip()
        lines.append(f"Signé: {signer} | {signed_at}")
    return lines


def _overlay_page(width: float, height: float, lines: List[str]) -> PageObject:
    """Render the footer lines on a blank page of the same size."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(width, height))
    c.setFont(FONT_NAME, FONT_SIZE)
    y = FOOTER_Y
    for text in lines:
        text_width = stringWidth(text, FONT_NAME, FONT_SIZE)
        x = width - text_width - RIGHT_MARGIN
        # backing box
        c.setFillColorRGB(1, 1, 1, alpha=0.7)
        c.rect(x - 2, y - 2, text_width + 4, FONT_SIZE + 4, stroke=0, fill=1)
        c.setFillColorRGB(0.3, 0.3, 0.3, alpha=0.9)
        c.drawString(x, y, text)
        y += FONT_SIZE + LINE_GAP
    c.showPage()
    c.save()
    buffer.seek(0)
    return PdfReader(buffer).pages[0]


def _metadata(uid: str, token: str, digest: str, signature_info: Optional[str], now: datetime) -> dict:
    iso_now = now.isoformat()
    security_info = f"UID:{uid} | Token:{token} | Hash:{digest} | Timestamp:{iso_now}"
    issuer_info = f"Certifié par: {settings.PROVENANCE_CREATOR} | Vérification: {settings.VERIFICATION_CONTACT}"

    keywords = ["document sécurisé", "authentifié", uid, token, digest, settings.PROVENANCE_CREATOR]
    if signature_info:
        keywords.append("signé électroniquement")
        keywords.append(f"signature:{signature_info}")
        keywords.append(f"date_signature:{iso_now}")

    return {
        "/Title": f"Document sécurisé - {uid}",
        "/Author": settings.PROVENANCE_AUTHOR,
        "/Creator": settings.PROVENANCE_CREATOR,
        "/Producer": settings.PROVENANCE_PRODUCER,
        "/Subject": f"Document authentifié par {settings.APP_NAME} - {security_info} | {issuer_info}",
        "/Keywords": ", ".join(keywords),
    }


def embed_provenance(
    pdf_bytes: bytes,
    uid: str,
    token: str,
    signature_info: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bytes:
    """
    Return a copy of `pdf_bytes` carrying provenance footers and metadata.

    Raises ProvenanceError when the PDF cannot be read or written.
    """
    now = now or datetime.now().astimezone()
    digest = content_hash(pdf_bytes)
    signed_at = now.strftime("%d/%m/%Y %H:%M:%S")

    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        writer = PdfWriter()
        total = len(reader.pages)

        for index, page in enumerate(reader.pages, start=1):
            box = page.mediabox
            width, height = float(box.width), float(box.height)
            overlay = _overlay_page(width, height, footer_lines(index, total, uid, token, signature_info, signed_at))
            if float(box.left) or float(box.bottom):
                overlay.add_transformation([1, 0, 0, 1, float(box.left), float(box.bottom)])
            page.merge_page(overlay)
            writer.add_page(page)

        writer.add_metadata(_metadata(uid, token, digest, signature_info, now))

        output = io.BytesIO()
        writer.write(output)
        return output.getvalue()
    except Exception as exc:
        raise ProvenanceError(f"Impossible d'ajouter l'UID et le token au PDF: {exc}") from exc


def embed_or_original(
    pdf_bytes: bytes,
    uid: str,
    token: str,
    signature_info: Optional[str] = None,
) -> bytes:
    """Embedding is best effort: on failure log it and keep the original bytes."""
    try:
        return embed_provenance(pdf_bytes, uid, token, signature_info)
    except ProvenanceError:
        logger.exception("Provenance embedding failed for %s; using original bytes", uid)
        return pdf_bytes
