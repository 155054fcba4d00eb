from __future__ import annotations

from datetime import date as _date, timedelta
from decimal import Decimal
from pathlib import Path
import sys

# Ensure we can import the rental package when running this script directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rental.core.settings import load_settings
from rental.pdf.invoice_pdf import build_invoice_pdf, invoice_number
from rental.printing.launch import open_file


def sample_data() -> dict:
    items = [
        {"car_type": "Toyota Avanza", "quantity": 2, "days": 3, "daily_rate": Decimal("300000")},
        {"car_type": "Toyota Innova Reborn", "quantity": 1, "days": 3, "daily_rate": Decimal("550000")},
        {"car_type": "Honda Brio", "quantity": 1, "days": 2, "daily_rate": Decimal("250000")},
    ]
    for it in items:
        it["subtotal"] = it["quantity"] * it["daily_rate"] * it["days"]
    settings = load_settings()
    start = _date.today()

    return {
        "business": {
            "name": settings.business_name,
            "tagline": settings.tagline,
            "address": settings.business_address,
            "phone": settings.business_phone,
            "email": settings.business_email,
        },
        "invoice": {"number": invoice_number("5f1c2a9e-sample"), "date": start},
        "customer": {"name": "Budi Santoso", "phone": "0812 3456 7890", "address": "Jl. Merdeka No. 10\nBandung"},
        "rental": {"start": start, "end": start + timedelta(days=3)},
        "items": items,
        "notes": "Penjemputan di bandara pukul 09.00.",
        "settings": {
            "currency_symbol": settings.currency_symbol,
            "logo_path": settings.logo_path,
            "invoice_footer": settings.invoice_footer,
        },
    }


def main() -> None:
    out_pdf = load_settings().resolved_invoice_dir() / "sample_invoice.pdf"
    build_invoice_pdf(out_pdf, sample_data())
    print(f"Sample invoice written to: {out_pdf}")
    open_file(str(out_pdf))


if __name__ == "__main__":
    main()
