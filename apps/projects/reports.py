"""
Project PDF report
"""
import logging
from xml.sax.saxutils import escape

from django.utils import timezone
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, Spacer, Table

from apps.core.formatting import format_currency, format_duration_hm, safe_filename_part, seconds_to_hours
from apps.core.pdf import CONTENT_WIDTH, get_styles, grid_table, header, key_value_table, load_image, render
from .models import STATUS_COMPLETED, STATUS_IN_PROGRESS

logger = logging.getLogger(__name__)

GALLERY_COLUMNS = 3


def get_report_filename(project, today=None):
    today = today or timezone.localdate()
    return f"GeniusERPCRM_Relatorio_{safe_filename_part(project.client_name)}_{today.strftime('%Y%m%d')}.pdf"


def _stage_cost_label(stage):
    cost = stage.get_cost()
    if cost is None:
        return 'N/A (fixed)'
    return format_currency(cost)


def _progress_summary(project, stages, total_seconds):
    started = [stage.name for stage in stages if stage.status in (STATUS_COMPLETED, STATUS_IN_PROGRESS)]
    text = (
        f'Project "{project.client_name}" is currently {project.get_status_display().lower()}. '
        f'A total of {format_duration_hm(total_seconds)} was recorded across {len(stages)} stage(s), '
        f'with an estimated cost of {format_currency(project.get_estimated_cost(total_seconds))}.'
    )
    if started:
        text += f" Stages completed or in progress: {', '.join(started)}."
    return text


def _gallery(stages, styles):
    story = []
    image_width = (CONTENT_WIDTH - (GALLERY_COLUMNS - 1) * 4 * mm) / GALLERY_COLUMNS

    for stage in stages:
        images = [img for img in (load_image(item.image, image_width) for item in stage.images.all()) if img is not None]
        if not images:
            continue

        story.append(Paragraph(escape(stage.name), styles['Heading4']))
        rows = [images[i:i + GALLERY_COLUMNS] for i in range(0, len(images), GALLERY_COLUMNS)]
        rows[-1] += [''] * (GALLERY_COLUMNS - len(rows[-1]))
        story.append(Table(rows, colWidths=[image_width + 4 * mm] * GALLERY_COLUMNS))
        story.append(Spacer(1, 4 * mm))

    return story


def build_project_report(project, now=None):
    """
    Render the project report

    Returns:
        tuple: (filename, pdf bytes)
    """
    now = timezone.localtime(now or timezone.now())
    env_settings = project.environment.get_settings()
    styles = get_styles()

    stages = list(project.stages.order_by('order', 'id'))
    total_seconds = sum(stage.accumulated_time for stage in stages)

    story = header(
        'Project Report',
        [project.client_name, f"Generated on {now.strftime('%d/%m/%Y %H:%M')}"],
        env_settings.logo_image,
        styles,
    )

    story.append(Paragraph('Project summary', styles['SectionTitle']))
    story.append(key_value_table([
        ('Client', project.client_name),
        ('Description', project.description),
        ('Type', project.get_type_label()),
        ('Current status', project.get_status_display()),
        ('Billing', project.get_billing_label()),
        ('Created', timezone.localtime(project.created_at).strftime('%d/%m/%Y')),
        ('Total time', format_duration_hm(total_seconds)),
        ('Total estimated cost', format_currency(project.get_estimated_cost(total_seconds))),
    ], styles))

    story.append(Paragraph('Stages', styles['SectionTitle']))
    if stages:
        rows = [['#', 'Stage name', 'Status', 'Deadline', 'Time spent', 'Cost (est.)']]
        for index, stage in enumerate(stages, start=1):
            rows.append([
                str(index),
                Paragraph(escape(stage.name), styles['Cell']),
                stage.get_status_display(),
                stage.deadline.strftime('%d/%m/%Y') if stage.deadline else '-',
                format_duration_hm(stage.accumulated_time),
                _stage_cost_label(stage),
            ])
        story.append(grid_table(rows, col_widths=[10 * mm, 55 * mm, 25 * mm, 25 * mm, 25 * mm, CONTENT_WIDTH - 140 * mm]))

        story.append(Paragraph('Time allocation', styles['SectionTitle']))
        allocation = [['Stage', 'Time (hours)']]
        allocation += [
            [Paragraph(escape(stage.name), styles['Cell']), f"{seconds_to_hours(stage.accumulated_time):.2f}"]
            for stage in stages
        ]
        story.append(grid_table(allocation, col_widths=[CONTENT_WIDTH - 40 * mm, 40 * mm]))
    else:
        story.append(Paragraph('No stages registered.', styles['Muted']))

    if env_settings.is_detailed_layout():
        story.append(Paragraph('Progress summary', styles['SectionTitle']))
        story.append(Paragraph(escape(_progress_summary(project, stages, total_seconds)), styles['Normal']))

        gallery = _gallery(stages, styles)
        if gallery:
            story.append(Paragraph('Image gallery', styles['SectionTitle']))
            story.extend(gallery)

    signature = load_image(env_settings.signature_image, 50 * mm)
    if signature is not None:
        story += [Spacer(1, 10 * mm), Paragraph('Best regards,', styles['Normal']), signature,
                  Paragraph('Responsible architect', styles['Muted'])]

    pdf = render(story, f"Project Report - {project.client_name}")
    logger.info(f"Project report generated for project {project.pk} ({len(pdf)} bytes)")
    return get_report_filename(project, now.date()), pdf
