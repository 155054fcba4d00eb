from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen.canvas import Canvas

from rental.core.currency import fmt_idr, to_decimal
from rental.core.dates import fmt_date_long
from rental.core.paths import resource_path
from rental.core.settings import Settings
from rental.domain.aggregation import compute_order_total
from rental.pdf.table_layout import BRAND, build_items_table

logger = logging.getLogger(__name__)

# ===== Layout constants (tweak here) =====
PAGE_SIZE = A4
PAGE_WIDTH, PAGE_HEIGHT = PAGE_SIZE

MARGIN_LEFT = 18 * mm
MARGIN_RIGHT = 18 * mm
MARGIN_TOP = 18 * mm
MARGIN_BOTTOM = 18 * mm
CONTENT_WIDTH = PAGE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT

LOGO_SIZE = 16 * mm
TITLE_FONT_SIZE = 22
BRAND_FONT_SIZE = 20
SECTION_FONT_SIZE = 9
TEXT_FONT_SIZE = 10
SMALL_FONT_SIZE = 8
LINE_GAP = 4.6 * mm
SECTION_GAP = 7 * mm

# Height kept free at the bottom of the last page for notes, signatures and footer
CLOSING_BLOCK_H = 62 * mm

FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
TEXT_COLOR = colors.HexColor("#111827")
MUTED_COLOR = colors.HexColor("#4B5563")
NOTE_FILL = colors.HexColor("#FEFCE8")
NOTE_RULE = colors.HexColor("#FDE68A")


# ===== Helpers =====
def invoice_number(order_id: str) -> str:
    """Short invoice number shown to customers: '#' + first 8 characters of the order id."""
    return "#" + str(order_id or "")[:8].upper()


def _get(d: Dict[str, Any], path: str, default: Any = "") -> Any:
    cur: Any = d
    for part in path.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        else:
            return default
    return cur


def _wrap_text(text: str, max_width: float, font_name: str, font_size: float) -> List[str]:
    """Greedy word wrap; paragraphs in ``text`` are kept."""
    width_fn = pdfmetrics.stringWidth
    out: List[str] = []
    for para in (text or "").replace("\r", "").split("\n"):
        words = para.split()
        line: List[str] = []
        for w in words:
            trial = " ".join(line + [w])
            if width_fn(trial, font_name, font_size) <= max_width or not line:
                line.append(w)
            else:
                out.append(" ".join(line))
                line = [w]
        out.append(" ".join(line))
    return out


def _resolve_logo(data: Dict[str, Any]) -> Optional[Path]:
    lp = _get(data, "settings.logo_path", None)
    if not lp:
        return None
    p = Path(lp)
    if not p.exists():
        p = resource_path(lp)
    return p if p.exists() else None


def _draw_header(c: Canvas, data: Dict[str, Any]) -> float:
    """Business block on the left, INVOICE number/date on the right. Returns y below the header rule."""
    top_y = PAGE_HEIGHT - MARGIN_TOP
    x = MARGIN_LEFT

    logo = _resolve_logo(data)
    if logo is not None:
        try:
            c.drawImage(str(logo), x, top_y - LOGO_SIZE, width=LOGO_SIZE, height=LOGO_SIZE,
                        preserveAspectRatio=True, mask="auto")
            x += LOGO_SIZE + 4 * mm
        except OSError:
            logger.warning("Could not draw logo %s", logo)

    c.setFillColor(BRAND)
    c.setFont(BOLD_FONT, BRAND_FONT_SIZE)
    c.drawString(x, top_y - 7 * mm, str(_get(data, "business.name", "")))
    c.setFillColor(MUTED_COLOR)
    c.setFont(FONT, TEXT_FONT_SIZE)
    c.drawString(x, top_y - 12 * mm, str(_get(data, "business.tagline", "")))

    y = top_y - LOGO_SIZE - 5 * mm
    c.setFont(FONT, SMALL_FONT_SIZE + 1)
    for label, key in (("", "address"), ("Telp: ", "phone"), ("Email: ", "email")):
        val = _get(data, f"business.{key}", "")
        if val:
            c.drawString(MARGIN_LEFT, y, f"{label}{val}")
            y -= 4 * mm

    # Right column
    rx = PAGE_WIDTH - MARGIN_RIGHT
    c.setFillColor(TEXT_COLOR)
    c.setFont(BOLD_FONT, TITLE_FONT_SIZE)
    c.drawRightString(rx, top_y - 7 * mm, "INVOICE")
    c.setFont(FONT, TEXT_FONT_SIZE)
    c.setFillColor(MUTED_COLOR)
    c.drawRightString(rx, top_y - 14 * mm, "No. Invoice:")
    c.drawRightString(rx, top_y - 24 * mm, "Tanggal:")
    c.setFillColor(TEXT_COLOR)
    c.setFont("Courier-Bold", TEXT_FONT_SIZE + 1)
    c.drawRightString(rx, top_y - 19 * mm, str(_get(data, "invoice.number", "")))
    c.setFont(FONT, TEXT_FONT_SIZE)
    c.drawRightString(rx, top_y - 29 * mm, fmt_date_long(_get(data, "invoice.date", None)))

    line_y = min(y, top_y - 32 * mm) - 2 * mm
    c.setStrokeColor(BRAND)
    c.setLineWidth(1.5)
    c.line(MARGIN_LEFT, line_y, PAGE_WIDTH - MARGIN_RIGHT, line_y)
    return line_y


def _section_title(c: Canvas, x: float, y: float, title: str) -> None:
    c.setFillColor(BRAND)
    c.setFont(BOLD_FONT, SECTION_FONT_SIZE)
    c.drawString(x, y, title.upper())


def _draw_parties(c: Canvas, data: Dict[str, Any], y_top: float) -> float:
    """Customer block (left) and rental period block (right). Returns y below both."""
    half = CONTENT_WIDTH / 2
    left_x = MARGIN_LEFT
    right_x = MARGIN_LEFT + half + 4 * mm

    y = y_top - SECTION_GAP
    _section_title(c, left_x, y, "Informasi Pelanggan")
    ly = y - 6 * mm
    c.setFillColor(TEXT_COLOR)
    c.setFont(BOLD_FONT, TEXT_FONT_SIZE)
    c.drawString(left_x, ly, str(_get(data, "customer.name", "")))
    ly -= LINE_GAP
    c.setFont(FONT, TEXT_FONT_SIZE)
    c.drawString(left_x, ly, f"Telepon: {_get(data, 'customer.phone', '')}")
    ly -= LINE_GAP
    address = _get(data, "customer.address", None)
    if address:
        c.drawString(left_x, ly, "Alamat:")
        ly -= LINE_GAP
        for ln in _wrap_text(str(address), half - 6 * mm, FONT, TEXT_FONT_SIZE):
            c.drawString(left_x, ly, ln)
            ly -= LINE_GAP

    _section_title(c, right_x, y, "Periode Sewa")
    ry = y - 6 * mm
    c.setFillColor(MUTED_COLOR)
    c.setFont(FONT, TEXT_FONT_SIZE)
    c.drawString(right_x, ry, "Mulai:")
    c.drawString(right_x, ry - 2 * LINE_GAP, "Selesai:")
    c.setFillColor(TEXT_COLOR)
    c.setFont(BOLD_FONT, TEXT_FONT_SIZE)
    c.drawString(right_x, ry - LINE_GAP, fmt_date_long(_get(data, "rental.start", None)))
    c.drawString(right_x, ry - 3 * LINE_GAP, fmt_date_long(_get(data, "rental.end", None)))
    ry -= 4 * LINE_GAP

    return min(ly, ry) - 2 * mm


def _draw_notes(c: Canvas, notes: str, y_top: float) -> float:
    y = y_top - SECTION_GAP
    _section_title(c, MARGIN_LEFT, y, "Catatan")
    lines = _wrap_text(notes, CONTENT_WIDTH - 8 * mm, FONT, TEXT_FONT_SIZE)
    box_h = len(lines) * LINE_GAP + 4 * mm
    box_top = y - 3 * mm
    c.setFillColor(NOTE_FILL)
    c.setStrokeColor(NOTE_RULE)
    c.setLineWidth(0.6)
    c.rect(MARGIN_LEFT, box_top - box_h, CONTENT_WIDTH, box_h, stroke=1, fill=1)
    c.setFillColor(TEXT_COLOR)
    c.setFont(FONT, TEXT_FONT_SIZE)
    ty = box_top - 5 * mm
    for ln in lines:
        c.drawString(MARGIN_LEFT + 4 * mm, ty, ln)
        ty -= LINE_GAP
    return box_top - box_h


def _draw_signatures(c: Canvas, data: Dict[str, Any], y_top: float) -> float:
    """Renter (customer name) and staff signature lines."""
    col_w = CONTENT_WIDTH / 2
    label_y = y_top - SECTION_GAP
    rule_y = label_y - 14 * mm
    c.setStrokeColor(TEXT_COLOR)
    c.setLineWidth(1)
    for i, (label, name) in enumerate((
        ("Penyewa", str(_get(data, "customer.name", ""))),
        ("Petugas", "(_________________)"),
    )):
        cx = MARGIN_LEFT + col_w * i + col_w / 2
        c.setFillColor(MUTED_COLOR)
        c.setFont(FONT, TEXT_FONT_SIZE)
        c.drawCentredString(cx, label_y, label)
        c.line(cx - 28 * mm, rule_y, cx + 28 * mm, rule_y)
        c.setFillColor(TEXT_COLOR)
        c.setFont(BOLD_FONT, TEXT_FONT_SIZE)
        c.drawCentredString(cx, rule_y - 5 * mm, name)
    return rule_y - 8 * mm


def _draw_footer(c: Canvas, data: Dict[str, Any]) -> None:
    lines = [str(ln) for ln in (_get(data, "settings.invoice_footer", []) or []) if ln]
    if not lines:
        return
    c.setStrokeColor(colors.HexColor("#D1D5DB"))
    c.setLineWidth(0.5)
    top = MARGIN_BOTTOM + len(lines) * 4 * mm
    c.line(MARGIN_LEFT, top, PAGE_WIDTH - MARGIN_RIGHT, top)
    c.setFillColor(MUTED_COLOR)
    c.setFont(FONT, SMALL_FONT_SIZE)
    y = top - 4 * mm
    for ln in lines:
        c.drawCentredString(PAGE_WIDTH / 2, y, ln)
        y -= 4 * mm


# ===== Public API =====
def invoice_data(order: Any, items: List[Any], settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Build the data dict consumed by build_invoice_pdf from a stored order and its items."""
    settings = settings or Settings()
    return {
        "business": {
            "name": settings.business_name,
            "tagline": settings.tagline,
            "address": settings.business_address,
            "phone": settings.business_phone,
            "email": settings.business_email,
        },
        "invoice": {"number": invoice_number(order.id), "date": order.order_date},
        "customer": {
            "name": order.customer_name,
            "phone": order.customer_phone,
            "address": order.customer_address,
        },
        "rental": {"start": order.rental_start_date, "end": order.rental_end_date},
        "items": [
            {
                "car_type": it.car_type,
                "quantity": it.quantity,
                "days": it.days,
                "daily_rate": to_decimal(it.daily_rate),
                "subtotal": to_decimal(it.subtotal),
            }
            for it in items
        ],
        "total": to_decimal(order.total_amount),
        "notes": order.notes,
        "settings": {
            "currency_symbol": settings.currency_symbol,
            "logo_path": settings.logo_path,
            "invoice_footer": list(settings.invoice_footer),
        },
    }


def build_invoice_pdf(out_path: Path | str, data: Dict[str, Any]) -> Path:
    """Draw a printable A4 rental invoice with ReportLab; long item lists continue on new pages.

    Data shape (keys optional where noted):
    {
      "business": {"name", "tagline", "address"?, "phone"?, "email"?},
      "invoice": {"number": str, "date": date|str},
      "customer": {"name": str, "phone": str, "address"?: str},
      "rental": {"start": date|str, "end": date|str},
      "items": [{"car_type", "quantity", "days", "daily_rate", "subtotal"}, ...],
      "total"?: Decimal,       # defaults to the sum of item subtotals
      "notes"?: str,
      "settings"?: {"currency_symbol"?, "logo_path"?, "invoice_footer"?: [str]}
    }
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    items: List[Dict[str, Any]] = list(data.get("items", []) or [])
    total = data.get("total")
    if total is None:
        total = compute_order_total(items)
    symbol = _get(data, "settings.currency_symbol", "Rp") or "Rp"

    c = Canvas(str(out), pagesize=PAGE_SIZE)
    c.setAuthor(str(_get(data, "business.name", "") or "Rental Mobil"))
    c.setTitle(f"Invoice {_get(data, 'invoice.number', '')}")

    def new_page() -> float:
        y_after_header = _draw_header(c, data)
        y = _draw_parties(c, data, y_after_header)
        y -= SECTION_GAP
        _section_title(c, MARGIN_LEFT, y, "Rincian Item Sewa")
        return y - 3 * mm

    y = new_page()
    fresh_page = True
    pending = [build_items_table(items, total, CONTENT_WIDTH, symbol=symbol)]
    while pending:
        table = pending.pop(0)
        avail = y - MARGIN_BOTTOM
        _w, h = table.wrapOn(c, CONTENT_WIDTH, avail)
        parts = [] if h <= avail else table.split(CONTENT_WIDTH, avail)
        if h <= avail or (len(parts) < 2 and fresh_page):
            table.drawOn(c, MARGIN_LEFT, y - h)
            y -= h
            fresh_page = False
            continue
        if len(parts) < 2:
            # Not even the header and one row fit here; start over on a fresh page
            c.showPage()
            y = new_page()
            fresh_page = True
            pending.insert(0, table)
            continue
        head = parts[0]
        _w, h = head.wrapOn(c, CONTENT_WIDTH, avail)
        head.drawOn(c, MARGIN_LEFT, y - h)
        pending = list(parts[1:]) + pending
        c.showPage()
        y = new_page()
        fresh_page = True

    notes = data.get("notes")
    needed = CLOSING_BLOCK_H + (len(_wrap_text(str(notes), CONTENT_WIDTH - 8 * mm, FONT, TEXT_FONT_SIZE)) * LINE_GAP if notes else 0)
    if y - needed < MARGIN_BOTTOM:
        c.showPage()
        y = PAGE_HEIGHT - MARGIN_TOP
    if notes:
        y = _draw_notes(c, str(notes), y)
    _draw_signatures(c, data, y)
    _draw_footer(c, data)

    c.save()
    logger.info("Invoice %s written to %s", _get(data, "invoice.number", ""), out)
    return out
