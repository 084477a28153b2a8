import logging
import re
import sys
from urllib.parse import urlparse

UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9.-]")
SAFE_FILENAME = re.compile(r"^[A-Za-z0-9._-]+$")


def is_valid_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.hostname)


def is_same_host(url: str, origin: str) -> bool:
    """Exact hostname match. ``www.example.com`` and ``example.com`` are different sites."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return False
    return host is not None and host == urlparse(origin).hostname


def sanitize_filename(name: str) -> str:
    return UNSAFE_FILENAME_CHARS.sub("_", name)


def asset_filename(url: str) -> str:
    """Whole URL path, sanitized: ``/img/logo.png`` -> ``_img_logo.png``."""
    path = urlparse(url).path
    if path in ("", "/"):
        return "index.html"
    return sanitize_filename(path)


def page_filename(url: str) -> str:
    """Last path segment, sanitized: ``/docs/intro`` -> ``intro``."""
    path = urlparse(url).path
    if path in ("", "/"):
        return "index.html"
    return sanitize_filename(path.rsplit("/", 1)[-1] or "page.html")


def is_safe_filename(name: str) -> bool:
    return bool(SAFE_FILENAME.match(name)) and name.strip(".") != ""


_log_handler: logging.Handler | None = None


def configure_logging(level: str = "INFO") -> None:
    global _log_handler
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _log_handler is not None and _log_handler in root.handlers:
        return
    _log_handler = logging.StreamHandler(sys.stdout)
    _log_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(_log_handler)
