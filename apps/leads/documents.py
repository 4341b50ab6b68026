"""
Proposal PDF
"""
import logging
from xml.sax.saxutils import escape

from django.utils import timezone
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, Spacer

from apps.core.formatting import format_currency, safe_filename_part
from apps.core.pdf import CONTENT_WIDTH, get_styles, grid_table, header, render

logger = logging.getLogger(__name__)


def get_proposal_filename(proposal, today=None):
    today = today or timezone.localdate()
    client = safe_filename_part(proposal.lead.name)
    title = safe_filename_part(proposal.title)
    return f"proposta_{client}_{title}_{today.strftime('%Y%m%d')}.pdf"


def _paragraphs(text, style):
    return [Paragraph(escape(line), style) for line in text.splitlines() if line.strip()]


def _conditions(proposal):
    if proposal.is_fixed():
        return [
            'Type: Fixed price',
            f"Total value: {format_currency(proposal.total_value)}",
        ]

    hours = proposal.estimated_hours if proposal.estimated_hours is not None else 'N/A'
    return [
        'Type: Per hour',
        f"Hourly rate: {format_currency(proposal.hourly_rate)}",
        f"Estimated hours: {hours} h",
        f"Estimated total value: {format_currency(proposal.total_value)}",
    ]


def build_proposal_pdf(proposal, now=None):
    """
    Render a proposal for the client

    Returns:
        tuple: (filename, pdf bytes)
    """
    now = timezone.localtime(now or timezone.now())
    lead = proposal.lead
    env_settings = lead.environment.get_settings()
    styles = get_styles()

    story = header(
        proposal.title,
        [f"Proposal for: {lead.name}", f"Date: {now.strftime('%d/%m/%Y')}"],
        env_settings.logo_image,
        styles,
    )

    if proposal.description:
        story.append(Paragraph('Description', styles['SectionTitle']))
        story.extend(_paragraphs(proposal.description, styles['Normal']))

    story.append(Paragraph('Conditions', styles['SectionTitle']))
    story.extend(Paragraph(f"- {escape(line)}", styles['Normal']) for line in _conditions(proposal))

    if proposal.items:
        story.append(Paragraph('Included items', styles['SectionTitle']))
        fixed = proposal.is_fixed()
        rows = [['Item', 'Description', 'Value (R$)' if fixed else '']]
        for item in proposal.items:
            rows.append([
                Paragraph(escape(item.get('name', '')), styles['Cell']),
                Paragraph(escape(item.get('description') or ''), styles['Cell']),
                format_currency(item.get('value') or 0) if fixed else '-',
            ])
        story.append(grid_table(rows, col_widths=[55 * mm, CONTENT_WIDTH - 85 * mm, 30 * mm]))

    if proposal.observations:
        story.append(Paragraph('Observations', styles['SectionTitle']))
        story.extend(_paragraphs(proposal.observations, styles['Normal']))

    story += [
        Spacer(1, 25 * mm),
        Paragraph('_' * 45, styles['Normal']),
        Paragraph('Client signature', styles['Muted']),
    ]

    pdf = render(story, proposal.title)
    logger.info(f"Proposal PDF generated for proposal {proposal.pk}")
    return get_proposal_filename(proposal, now.date()), pdf
