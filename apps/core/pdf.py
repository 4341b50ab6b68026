"""
Shared reportlab building blocks for project reports and proposals
"""
import logging
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)


# COLOR PALETTE
NAVY = HexColor('#1B2A4A')
SLATE = HexColor('#64748B')
SLATE_PALE = HexColor('#F1F5F9')
WARM_GRAY = HexColor('#E8E4DF')
WHITE = HexColor('#FFFFFF')

PAGE_MARGIN = 15 * mm
CONTENT_WIDTH = A4[0] - 2 * PAGE_MARGIN


def get_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle('ReportTitle', parent=styles['Title'], fontSize=18, textColor=NAVY, alignment=0, spaceAfter=4))
    styles.add(ParagraphStyle('Muted', parent=styles['Normal'], fontSize=10, textColor=SLATE))
    styles.add(ParagraphStyle('SectionTitle', parent=styles['Heading2'], fontSize=13, textColor=NAVY, spaceBefore=10, spaceAfter=6))
    styles.add(ParagraphStyle('Cell', parent=styles['Normal'], fontSize=9, leading=11))
    return styles


def load_image(field_file, width):
    """
    Image flowable scaled to width (keeping aspect ratio)

    Returns None when the field is empty or the file cannot be read.
    """
    if not field_file:
        return None

    try:
        with field_file.open('rb') as handle:
            data = BytesIO(handle.read())
        image_width, image_height = ImageReader(data).getSize()
    except (OSError, ValueError):
        logger.warning(f"Could not load image for PDF: {field_file.name}", exc_info=True)
        return None

    data.seek(0)
    height = width * image_height / image_width
    return Image(data, width=width, height=height)


def header(title, subtitle_lines, logo_field, styles):
    """Title block with the environment logo on the right"""
    text = [Paragraph(escape(title), styles['ReportTitle'])]
    text.extend(Paragraph(escape(line), styles['Muted']) for line in subtitle_lines)

    logo = load_image(logo_field, 30 * mm)
    if logo is None:
        return text + [Spacer(1, 8 * mm)]

    block = Table([[text, logo]], colWidths=[CONTENT_WIDTH - 35 * mm, 35 * mm])
    block.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ALIGN', (1, 0), (1, 0), 'RIGHT'),
    ]))
    return [block, Spacer(1, 8 * mm)]


def grid_table(rows, col_widths=None, header_row=True):
    """Striped table in the report palette"""
    table = Table(rows, colWidths=col_widths, repeatRows=1 if header_row else 0)
    commands = [
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('GRID', (0, 0), (-1, -1), 0.5, WARM_GRAY),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [WHITE, SLATE_PALE]),
    ]
    if header_row:
        commands += [
            ('BACKGROUND', (0, 0), (-1, 0), NAVY),
            ('TEXTCOLOR', (0, 0), (-1, 0), WHITE),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ]
    table.setStyle(TableStyle(commands))
    return table


def key_value_table(pairs, styles):
    rows = [[Paragraph(f"<b>{label}</b>", styles['Cell']), Paragraph(escape(str(value)), styles['Cell'])] for label, value in pairs]
    return grid_table(rows, col_widths=[45 * mm, CONTENT_WIDTH - 45 * mm], header_row=False)


def render(story, title):
    """Build the story into A4 PDF bytes"""
    buffer = BytesIO()
    document = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=title,
    )
    document.build(story)
    return buffer.getvalue()
