"""
Output file naming from preset patterns.

Patterns support two tokens:
    {title}         the job title ("Project" when blank)
    {date:FORMAT}   the current time, FORMAT using .NET-style specifiers
                    (yyyy, yy, MMMM, MMM, MM, dd, HH, hh, mm, ss, fff, tt)

Any other text is copied literally.
"""

import os
import re
from datetime import datetime
from typing import Optional

from .models import Preset

_DATE_TOKEN = re.compile(r"\{date:(.+?)\}")
_FORMAT_SPECIFIER = re.compile(r"yyyy|yy|MMMM|MMM|MM|dd|HH|hh|mm|ss|fff|tt")

_STRFTIME = {
    "yyyy": "%Y",
    "yy": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "dd": "%d",
    "HH": "%H",
    "hh": "%I",
    "mm": "%M",
    "ss": "%S",
    "tt": "%p",
}


def format_date_pattern(fmt: str, moment: datetime) -> str:
    """Render ``moment`` using a .NET-style custom date format string."""
    parts = []
    position = 0
    for match in _FORMAT_SPECIFIER.finditer(fmt):
        parts.append(fmt[position:match.start()].replace("%", "%%"))
        token = match.group(0)
        if token == "fff":
            parts.append(f"{moment.microsecond // 1000:03d}".replace("%", "%%"))
        else:
            parts.append(_STRFTIME[token])
        position = match.end()
    parts.append(fmt[position:].replace("%", "%%"))
    return moment.strftime("".join(parts))


def build_suggested_output_name(job, preset: Preset, now: Optional[datetime] = None) -> str:
    """
    Build the default output file name for a job.

    Args:
        job: Object with ``title`` and ``container_ext`` attributes
        preset: Preset whose file name pattern is used
        now: Time used for {date:...} tokens (defaults to the current time)

    Returns:
        File name (no directory) ending in the job's container extension
    """
    extension = job.container_ext or preset.container_extension
    pattern = preset.general.file_name_pattern
    if not pattern or not pattern.strip():
        return job.title + extension

    moment = now or datetime.now()
    title = job.title if job.title and job.title.strip() else "Project"

    result = pattern.replace("{title}", title)
    result = _DATE_TOKEN.sub(lambda m: format_date_pattern(m.group(1), moment), result)

    if not result.lower().endswith(extension.lower()):
        result += extension

    return result


def apply_container_extension(path: str, extension: str) -> str:
    """
    Swap the extension of ``path`` for ``extension`` if they differ.

    The comparison is case-insensitive; a matching extension is kept as is.
    """
    root, current = os.path.splitext(path)
    if current.lower() == extension.lower():
        return path
    return root + extension
