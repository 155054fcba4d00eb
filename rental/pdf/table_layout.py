# rental/pdf/table_layout.py
from reportlab.platypus import Table, TableStyle
from reportlab.lib import colors
from reportlab.lib.units import mm

from rental.core.currency import fmt_idr

# Column widths (in mm); Car type absorbs the remainder
COL_W_UNITS = 16 * mm
COL_W_DAYS = 16 * mm
COL_W_RATE = 34 * mm
COL_W_SUBTOTAL = 38 * mm

BRAND = colors.HexColor("#2563EB")
ZEBRA = colors.HexColor("#F9FAFB")
RULE = colors.HexColor("#D1D5DB")

W_GRID = 0.60
W_HEAVY = 1.20

BODY_ROW_H = 7 * mm

PADDING_V = (4, 4)   # top, bottom
PADDING_H = (6, 6)   # left, right

HEADERS = ["Tipe Mobil", "Unit", "Hari", "Harga/Hari", "Subtotal"]


def _col_widths(content_width: float) -> list[float]:
    fixed = COL_W_UNITS + COL_W_DAYS + COL_W_RATE + COL_W_SUBTOTAL
    car = max(120.0, content_width - fixed)
    return [car, COL_W_UNITS, COL_W_DAYS, COL_W_RATE, COL_W_SUBTOTAL]


def build_items_table(lines: list[dict], total, content_width: float, symbol: str = "Rp") -> Table:
    """
    Build the rental items table with a closing total row.
    lines: list of dicts with keys car_type, quantity, days, daily_rate, subtotal
    total: order total shown on the last row
    content_width: usable width inside margins
    """
    data = [list(HEADERS)]
    for row in lines:
        data.append([
            str(row["car_type"]),
            str(row["quantity"]),
            str(row["days"]),
            fmt_idr(row["daily_rate"], symbol),
            fmt_idr(row["subtotal"], symbol),
        ])
    last_body_i = len(data) - 1

    data.append(["TOTAL PEMBAYARAN", "", "", "", fmt_idr(total, symbol)])
    total_i = len(data) - 1

    t = Table(data, colWidths=_col_widths(content_width), rowHeights=[BODY_ROW_H] * len(data), repeatRows=1)

    ts = TableStyle()
    ts.add("BOX", (0, 0), (-1, -1), W_GRID, RULE)
    ts.add("INNERGRID", (0, 0), (-1, last_body_i), W_GRID, RULE)

    # Header: white on brand
    ts.add("BACKGROUND", (0, 0), (-1, 0), BRAND)
    ts.add("TEXTCOLOR", (0, 0), (-1, 0), colors.white)
    ts.add("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold")
    ts.add("FONTSIZE", (0, 0), (-1, 0), 10)
    ts.add("ALIGN", (1, 0), (2, 0), "CENTER")
    ts.add("ALIGN", (3, 0), (4, 0), "RIGHT")

    # Body
    if last_body_i >= 1:
        ts.add("FONTNAME", (0, 1), (-1, last_body_i), "Helvetica")
        ts.add("FONTSIZE", (0, 1), (-1, last_body_i), 10)
        ts.add("ALIGN", (1, 1), (2, last_body_i), "CENTER")
        ts.add("ALIGN", (3, 1), (4, last_body_i), "RIGHT")
        ts.add("FONTNAME", (4, 1), (4, last_body_i), "Helvetica-Bold")
        for i in range(2, last_body_i + 1, 2):
            ts.add("BACKGROUND", (0, i), (-1, i), ZEBRA)

    # Total row spans the label columns
    ts.add("SPAN", (0, total_i), (3, total_i))
    ts.add("BACKGROUND", (0, total_i), (-1, total_i), BRAND)
    ts.add("TEXTCOLOR", (0, total_i), (-1, total_i), colors.white)
    ts.add("FONTNAME", (0, total_i), (-1, total_i), "Helvetica-Bold")
    ts.add("FONTSIZE", (0, total_i), (-1, total_i), 12)
    ts.add("ALIGN", (4, total_i), (4, total_i), "RIGHT")
    ts.add("LINEABOVE", (0, total_i), (-1, total_i), W_HEAVY, BRAND)

    ts.add("LEFTPADDING", (0, 0), (-1, -1), PADDING_H[0])
    ts.add("RIGHTPADDING", (0, 0), (-1, -1), PADDING_H[1])
    ts.add("TOPPADDING", (0, 0), (-1, -1), PADDING_V[0])
    ts.add("BOTTOMPADDING", (0, 0), (-1, -1), PADDING_V[1])
    ts.add("VALIGN", (0, 0), (-1, -1), "MIDDLE")

    t.setStyle(ts)
    return t
