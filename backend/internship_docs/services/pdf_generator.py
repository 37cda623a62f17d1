"""
PDF Generator Service.

Turns a resolved offer letter or completion certificate into PDF bytes.
Every artifact carries the verification code twice: as text and as a QR code,
so the code can be recovered from a printed copy even when text extraction
is unreliable.
"""

import io
import logging
from datetime import datetime, timezone

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Image, HRFlowable
)

from internship_docs.core.exceptions import RenderFailure
from internship_docs.services.templates import ResolvedDocument

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

BRAND_COLOR = "#4F46E5"
ACCENT_COLOR = "#D97706"


class PDFGenerator:
    """Renders resolved document markup to PDF."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Add one paragraph style per template block style."""
        self.styles.add(ParagraphStyle(
            name='block_organization',
            parent=self.styles['Heading1'],
            fontSize=22,
            spaceAfter=10,
            alignment=TA_CENTER,
            textColor=colors.HexColor(BRAND_COLOR),
        ))
        self.styles.add(ParagraphStyle(
            name='block_title',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceBefore=10,
            spaceAfter=20,
            alignment=TA_CENTER,
            textColor=colors.HexColor(ACCENT_COLOR),
        ))
        self.styles.add(ParagraphStyle(
            name='block_recipient',
            parent=self.styles['Heading1'],
            fontSize=26,
            spaceBefore=10,
            spaceAfter=10,
            alignment=TA_CENTER,
            textColor=colors.HexColor(BRAND_COLOR),
        ))
        self.styles.add(ParagraphStyle(
            name='block_section',
            parent=self.styles['Heading2'],
            fontSize=13,
            spaceBefore=14,
            spaceAfter=6,
            textColor=colors.HexColor('#1a1a2e'),
        ))
        self.styles.add(ParagraphStyle(
            name='block_body',
            parent=self.styles['Normal'],
            fontSize=11,
            leading=15,
            spaceAfter=8,
            alignment=TA_LEFT,
        ))
        self.styles.add(ParagraphStyle(
            name='block_detail',
            parent=self.styles['Normal'],
            fontSize=10,
            leftIndent=12,
            spaceAfter=4,
        ))
        self.styles.add(ParagraphStyle(
            name='block_grade',
            parent=self.styles['Heading2'],
            fontSize=18,
            alignment=TA_CENTER,
            textColor=colors.HexColor(ACCENT_COLOR),
        ))
        self.styles.add(ParagraphStyle(
            name='block_signature',
            parent=self.styles['Normal'],
            fontSize=11,
            spaceBefore=20,
            spaceAfter=10,
        ))
        self.styles.add(ParagraphStyle(
            name='block_code',
            parent=self.styles['Normal'],
            fontSize=16,
            fontName='Courier-Bold',
            alignment=TA_CENTER,
            spaceBefore=6,
            spaceAfter=6,
            textColor=colors.HexColor(BRAND_COLOR),
        ))
        self.styles.add(ParagraphStyle(
            name='block_footer',
            parent=self.styles['Normal'],
            fontSize=8,
            textColor=colors.HexColor('#888888'),
            alignment=TA_CENTER,
            spaceBefore=20,
        ))

    def render(self, document: ResolvedDocument, qr_payload: str) -> bytes:
        """
        Render a resolved document to PDF bytes.

        Args:
            document: Template output for one issuance
            qr_payload: Text encoded into the QR code (the code or a verify URL)

        Returns:
            PDF bytes

        Raises:
            RenderFailure: on any renderer error or an empty/corrupt result
        """
        try:
            pdf = self._build(document, qr_payload)
        except RenderFailure:
            raise
        except Exception as e:
            logger.error(f"[RENDER] {document.kind.value} render failed: {e}")
            raise RenderFailure(f"Could not render {document.kind.value}: {e}") from e

        if not pdf or not pdf.startswith(b"%PDF"):
            logger.error(f"[RENDER] {document.kind.value} produced no PDF output")
            raise RenderFailure(f"Renderer produced an empty {document.kind.value}")
        return pdf

    def _build(self, document: ResolvedDocument, qr_payload: str) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=0.75*inch,
            leftMargin=0.75*inch,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch,
            title=document.title,
        )

        story = []
        for block in document.blocks:
            if block.style == 'section':
                story.append(Paragraph(block.text, self.styles['block_section']))
                story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#e0e0e0')))
                continue
            if block.style == 'code':
                story.append(Paragraph(block.text, self.styles['block_code']))
                story.append(self._qr_image(qr_payload))
                continue
            story.append(Paragraph(block.text, self.styles[f'block_{block.style}']))

        story.append(Spacer(1, 0.25*inch))
        story.append(Paragraph(
            f"Rendered {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}",
            self.styles['block_footer']
        ))

        doc.build(story)
        buffer.seek(0)
        return buffer.read()

    def _qr_image(self, payload: str, size: float = 1.5*inch) -> Image:
        """Encode the payload as a QR code PNG flowable."""
        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        png = io.BytesIO()
        img.save(png, format="PNG")
        png.seek(0)
        return Image(png, width=size, height=size)


def get_pdf_generator() -> PDFGenerator:
    """Get PDF generator instance."""
    return PDFGenerator()
