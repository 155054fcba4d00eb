import logging
import os
import subprocess
import sys

logger = logging.getLogger(__name__)


def print_pdf(path) -> bool:
    """Send a PDF to the default printer. Only Windows exposes a shell 'print' verb."""
    if sys.platform != "win32":
        return False
    try:
        os.startfile(path, "print")  # type: ignore[attr-defined]
        return True
    except OSError:
        logger.exception("Failed to print PDF: %s", path)
        return False


def open_file(path) -> bool:
    """Open a file with the platform's default viewer."""
    try:
        if sys.platform == "win32":
            os.startfile(path)  # type: ignore[attr-defined]
        elif sys.platform == "darwin":
            subprocess.Popen(["open", str(path)])
        else:
            subprocess.Popen(["xdg-open", str(path)])
        return True
    except OSError:
        logger.exception("Failed to open file: %s", path)
        return False
