from __future__ import annotations

import io
from datetime import datetime, timezone

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

COLUMNS = [("Seat", 40), ("Passenger", 80), ("Phone", 215), ("Next of kin", 310), ("NOK phone", 420), ("Status", 500)]
ROW_HEIGHT = 16


def render_manifest_pdf_bytes(*, park_name: str, destination: str, date_str: str, unit_time: str,
                              vehicle: str = "", driver_name: str = "", rows: list[dict]) -> bytes:
    """Return an A4 passenger manifest as PDF bytes. Pure function.

    rows: dicts with seat, name, phone, nokName, nokPhone, status, checkedIn.
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    _, h = A4

    def header():
        c.setFont("Helvetica-Bold", 16)
        c.drawString(40, h - 50, f"{park_name or 'Movaa Park'} - Passenger Manifest")
        c.setFont("Helvetica", 10)
        c.drawString(40, h - 68, f"Destination: {destination}")
        c.drawString(40, h - 82, f"Departure: {date_str} {unit_time}")
        c.drawString(300, h - 68, f"Vehicle: {vehicle or '-'}")
        c.drawString(300, h - 82, f"Driver: {driver_name or 'Unassigned'}")
        c.setFont("Helvetica-Bold", 9)
        for label, x in COLUMNS:
            c.drawString(x, h - 110, label)
        c.line(40, h - 114, 555, h - 114)
        c.setFont("Helvetica", 9)
        return h - 128

    y = header()
    for r in rows:
        if y < 60:
            c.showPage()
            y = header()
        status = r.get("status", "")
        if r.get("checkedIn"):
            status += " (in)"
        values = [str(r.get("seat") or "-"), r.get("name", ""), r.get("phone", ""),
                  r.get("nokName", ""), r.get("nokPhone", ""), status]
        for (_, x), v in zip(COLUMNS, values):
            c.drawString(x, y, (v or "")[:24])
        y -= ROW_HEIGHT

    c.setFont("Helvetica", 8)
    c.drawString(40, 40, f"Passengers: {len(rows)}")
    c.drawString(40, 28, f"Generated: {datetime.now(timezone.utc).isoformat()}")
    c.showPage()
    c.save()
    return buf.getvalue()
