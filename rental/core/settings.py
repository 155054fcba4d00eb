from __future__ import annotations

from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import os


from rental.core.paths import settings_path, default_db_path, default_invoice_dir

# Path to the settings.json (runtime-aware)
SETTINGS_PATH = settings_path()

# Environment override for the data store location
DATABASE_URL_ENV = "RENTAL_DATABASE_URL"


@dataclass
class Settings:
	business_name: str = "RENTAL MOBIL"
	tagline: str = "Layanan Sewa Mobil Terpercaya"
	business_address: str = "Jl. Contoh No. 123, Jakarta"
	business_phone: str = "(021) 1234-5678"
	business_email: str = "info@rentalmobil.com"
	currency_symbol: str = "Rp"
	# SQLAlchemy URL of the data store; None means a local SQLite file
	database_url: Optional[str] = None
	# Root directory for saved invoice PDFs; None means Documents/Rental Invoices
	invoice_dir: Optional[str] = None
	# Optional absolute/relative path to a logo image drawn on the invoice header
	logo_path: Optional[str] = None
	invoice_footer: List[str] = field(default_factory=lambda: [
		"Invoice ini sah dan diproses oleh sistem. Terima kasih atas kepercayaan Anda.",
		"Untuk pertanyaan, hubungi customer service kami di (021) 1234-5678",
	])

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "Settings":
		# Merge provided values over defaults, ignore unknown keys
		defaults = asdict(cls())
		merged: Dict[str, Any] = {**defaults, **{k: v for k, v in data.items() if k in defaults}}
		return cls(**merged)

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)

	def resolved_database_url(self) -> str:
		"""Database URL with the environment override applied."""
		env_url = os.environ.get(DATABASE_URL_ENV)
		if env_url:
			return env_url
		if self.database_url:
			return self.database_url
		# Use posix path for SQLAlchemy URL compatibility on Windows
		return f"sqlite:///{default_db_path().as_posix()}"

	def resolved_invoice_dir(self) -> Path:
		return Path(self.invoice_dir) if self.invoice_dir else default_invoice_dir()


def _coerce_path(path: Optional[Union[str, Path]]) -> Path:
	return Path(path) if path is not None else SETTINGS_PATH


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
	"""
	Load settings from JSON (UTF-8). If the file is missing, write defaults and return them.
	"""
	p = _coerce_path(path)
	if not p.exists():
		settings = Settings()
		save_settings(settings, p)
		return settings

	try:
		with p.open("r", encoding="utf-8") as f:
			raw: Dict[str, Any] = json.load(f)
	except (json.JSONDecodeError, OSError):
		# If unreadable/corrupt, fall back to defaults (do not overwrite automatically)
		return Settings()

	return Settings.from_dict(raw if isinstance(raw, dict) else {})


def save_settings(settings: Settings, path: Optional[Union[str, Path]] = None) -> None:
	"""Save settings to JSON (UTF-8), creating parent dirs if needed."""
	p = _coerce_path(path)
	p.parent.mkdir(parents=True, exist_ok=True)
	# Pretty JSON, keep Unicode
	tmp = p.with_suffix(p.suffix + ".tmp")
	with tmp.open("w", encoding="utf-8", newline="\n") as f:
		json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)
		f.write("\n")
	tmp.replace(p)
