from __future__ import annotations
from io import BytesIO
from typing import List
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from models import DayPlan, Settings


def _time_range(entry) -> str:
    if entry.start is None or entry.end is None:
        return ""
    return f"{entry.start:%H:%M} - {entry.end:%H:%M}"


def _status(entry) -> str:
    if not entry.completed:
        return "Pending"
    return "Success" if entry.success else "Failed"


def week_plan_to_pdf(plan: List[DayPlan], settings: Settings) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=40,
        rightMargin=40,
        topMargin=40,
        bottomMargin=40,
    )
    styles = getSampleStyleSheet()
    elems = []

    week_start, week_end = plan[0].day, plan[-1].day
    elems.append(Paragraph(f"Study Plan: {week_start.isoformat()} - {week_end.isoformat()}", styles["Title"]))
    elems.append(Spacer(1, 10))
    elems.append(Paragraph(
        f"Working hours: {settings.day_start_hour}:00 - {settings.day_end_hour}:00 "
        f"| Lunch: {settings.lunch_break_start:g} - {settings.lunch_break_end:g} "
        f"| Max/day: {settings.max_hours_per_day:g}h | Intervals: {settings.catalog}",
        styles["Normal"],
    ))
    elems.append(Spacer(1, 12))

    for day in plan:
        elems.append(Paragraph(day.day.strftime("%A, %Y-%m-%d"), styles["Heading3"]))
        for c in day.constraints:
            hours = "All day" if c.is_full_day else f"{c.start_hour}:00 - {c.end_hour}:00"
            elems.append(Paragraph(f"Constraint: {c.description} ({hours})", styles["Italic"]))
        if not day.sessions:
            elems.append(Paragraph("Rest - no sessions", styles["Normal"]))
            elems.append(Spacer(1, 8))
            continue

        table_data = [["Course", "Interval", "Time", "Hours", "Status"]]
        for entry in day.sessions:
            table_data.append([
                entry.course_name,
                entry.label + (" *" if entry.rescheduled else ""),
                _time_range(entry),
                f"{entry.hours:g}",
                _status(entry),
            ])
        table_data.append(["Total", "", "", f"{day.total_hours:g}", ""])

        table = Table(table_data, hAlign="LEFT", colWidths=[150, 110, 90, 50, 60])
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("BACKGROUND", (0, -1), (-1, -1), colors.whitesmoke),
            ("ALIGN", (3, 1), (3, -1), "RIGHT"),
        ]
        if day.overloaded:
            style.append(("TEXTCOLOR", (3, -1), (3, -1), colors.red))
        table.setStyle(TableStyle(style))
        elems.append(table)
        elems.append(Spacer(1, 8))

    elems.append(Paragraph("* rescheduled from its original day", styles["Normal"]))
    doc.build(elems)
    return buf.getvalue()
