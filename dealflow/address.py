"""Address helpers."""

from __future__ import annotations

import re

# 5-digit zip, optionally followed by +4
_ZIP_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")


def extract_zip_code(address: str) -> str | None:
    """Return the zip code from an address like "123 Main St, City, ST 43211".

    Only the segment after the last comma is searched, so addresses without a
    comma or with the zip elsewhere yield None.
    """
    parts = address.split(",")
    if len(parts) < 2:
        return None

    last_part = parts[-1].strip()
    if not last_part:
        return None

    match = _ZIP_RE.search(last_part)
    return match.group(1) if match else None
