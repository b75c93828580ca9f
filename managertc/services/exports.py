# ===========================================================
# Job list exports (PDF / Excel) and delayed file cleanup
# ===========================================================
import asyncio
import os
from pathlib import Path
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlmodel import Session

from managertc.core.config import settings
from managertc.core.logging import get_logger
from managertc.models.common import utcnow
from managertc.models.job import Job, JobFilters
from managertc.services import jobs as job_service

logger = get_logger(__name__)

HEADERS = [
    "Job ID",
    "Title",
    "Category",
    "Type",
    "Level",
    "Location",
    "Salary",
    "Status",
    "Applicants",
    "Posted",
    "Expires",
]


def _row(job: Job) -> list:
    return [
        job.job_id,
        job.title,
        job.category,
        job.job_type,
        job.job_level,
        job.location_string,
        job.salary_range,
        job.status,
        job.applicants_count,
        job.posted_date.strftime("%Y-%m-%d") if job.posted_date else "",
        job.expired_date.strftime("%Y-%m-%d") if job.expired_date else "",
    ]


def _export_path(company_id: str, extension: str) -> Path:
    directory = Path(settings.EXPORT_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = utcnow().strftime("%Y%m%d%H%M%S%f")
    return directory / f"jobs_{company_id}_{stamp}.{extension}"


# ===========================================================
# Excel Export
# ===========================================================
def export_excel(
    session: Session,
    company_id: str,
    user_id: Optional[str],
    filters: Optional[JobFilters] = None,
) -> dict:
    jobs = job_service.find_for_export(session, company_id, filters)
    path = _export_path(company_id, "xlsx")

    wb = Workbook()
    ws = wb.active
    ws.title = "Jobs"
    ws.append(HEADERS)

    for col in range(1, len(HEADERS) + 1):
        ws.cell(row=1, column=col).font = Font(bold=True)
        ws.cell(row=1, column=col).alignment = Alignment(horizontal="center")

    for job in jobs:
        ws.append(_row(job))

    wb.save(path)
    logger.info(
        f"Excel export of {len(jobs)} jobs for {company_id} by {user_id}: {path.name}"
    )
    return {"filePath": str(path), "fileName": path.name, "totalJobs": len(jobs)}


# ===========================================================
# PDF Export
# ===========================================================
def export_pdf(
    session: Session,
    company_id: str,
    user_id: Optional[str],
    filters: Optional[JobFilters] = None,
) -> dict:
    jobs = job_service.find_for_export(session, company_id, filters)
    path = _export_path(company_id, "pdf")

    doc = SimpleDocTemplate(str(path), pagesize=landscape(A4), title="Jobs Report")
    styles = getSampleStyleSheet()
    story = [
        Paragraph("<b>Jobs Report</b>", styles["Title"]),
        Spacer(1, 12),
        Paragraph(f"<b>Total jobs:</b> {len(jobs)}", styles["Normal"]),
        Paragraph(
            f"<b>Generated on:</b> {utcnow().strftime('%d %b %Y, %H:%M')} UTC",
            styles["Normal"],
        ),
        Spacer(1, 12),
    ]

    table = Table([HEADERS] + [_row(job) for job in jobs], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1976D2")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ]
        )
    )
    story.append(table)
    doc.build(story)

    logger.info(
        f"PDF export of {len(jobs)} jobs for {company_id} by {user_id}: {path.name}"
    )
    return {"filePath": str(path), "fileName": path.name, "totalJobs": len(jobs)}


# ===========================================================
# Cleanup
# ===========================================================
def remove_file(path: str) -> bool:
    """Delete an export if it still exists; failures are logged only."""
    try:
        if os.path.exists(path):
            os.remove(path)
            logger.info(f"Cleaned up export file: {path}")
            return True
    except OSError as e:
        logger.error(f"Error cleaning up export file {path}: {e}")
    return False


def schedule_file_cleanup(
    path: str, delay: Optional[float] = None
) -> asyncio.TimerHandle:
    """
    One-shot deletion of ``path`` after ``delay`` seconds on the running loop.

    Pending cleanups live only in this process and are lost on restart.
    """
    delay = settings.EXPORT_CLEANUP_SECONDS if delay is None else delay
    loop = asyncio.get_running_loop()
    return loop.call_later(delay, remove_file, path)
