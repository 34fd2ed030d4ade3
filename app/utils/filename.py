import re
import unicodedata
from urllib.parse import quote

WINDOWS_RESERVED = {
    'CON', 'PRN', 'AUX', 'NUL',
    'COM1', 'COM2', 'COM3', 'COM4', 'COM5', 'COM6', 'COM7', 'COM8', 'COM9',
    'LPT1', 'LPT2', 'LPT3', 'LPT4', 'LPT5', 'LPT6', 'LPT7', 'LPT8', 'LPT9'
}


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """Replace anything but word characters, spaces, dots and dashes; cap length"""
    name = unicodedata.normalize("NFKC", name or "")
    name = re.sub(r"[^\w\s.-]", "_", name)
    name = re.sub(r"\s+", " ", name)
    name = name[:max_length].strip(" .")

    if not name:
        return "media"
    if name.upper() in WINDOWS_RESERVED:
        name = f"_{name}"
    return name


def media_filename(title: str, extension: str, max_length: int = 100) -> str:
    return f"{sanitize_filename(title, max_length)}.{extension}"


def content_disposition(filename: str) -> str:
    """attachment header with an ASCII fallback plus the RFC 5987 form"""
    ascii_name = filename.encode("ascii", "ignore").decode() or "media"
    ascii_name = ascii_name.replace('"', "_")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
