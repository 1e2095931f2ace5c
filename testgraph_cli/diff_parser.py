"""Parser for ``git diff --unified=0`` output.

Example input::

    diff --git a/src/app/calc.py b/src/app/calc.py
    --- a/src/app/calc.py
    +++ b/src/app/calc.py
    @@ -10,2 +10,3 @@ def existing():
    +    added line 1
    +    added line 2
    +    added line 3
    @@ -20 +21 @@ class Bar:
    -    old line
    +    new line

Only the new-file side of each hunk header (``+new_start,new_count``) is
used.  The count may be omitted, meaning 1.  A count of 0 is a pure deletion:
the deleted lines have no counterpart in the new file, so the hunk is
skipped.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from .models import FileDiff, LineRange

logger = logging.getLogger(__name__)

FILE_HEADER_RE = re.compile(r"^diff --git a/.+ b/(.+)$")
HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,(\d+))? @@.*$")


class DiffParser:
    """Turns unified-diff text into per-file changed line ranges."""

    @staticmethod
    def parse(diff_text: str) -> Dict[str, FileDiff]:
        """Parse *diff_text* into a mapping of ``b/`` path -> :class:`FileDiff`.

        Files without at least one added/modified hunk are omitted.
        """
        result: Dict[str, FileDiff] = {}
        current_path: Optional[str] = None
        current_ranges: List[LineRange] = []

        def _flush() -> None:
            if current_path is not None and current_ranges:
                result[current_path] = FileDiff(current_path, tuple(current_ranges))

        for line in diff_text.splitlines():
            file_match = FILE_HEADER_RE.match(line)
            if file_match:
                _flush()
                current_path = file_match.group(1)
                current_ranges = []
                continue

            if not line.startswith("@@"):
                continue

            hunk_match = HUNK_HEADER_RE.match(line)
            if hunk_match is None:
                logger.debug("Skipping malformed hunk header: %r", line)
                continue
            if current_path is None:
                logger.debug("Skipping hunk outside of any file: %r", line)
                continue

            new_start = int(hunk_match.group(1))
            new_count = int(hunk_match.group(2) or "1")
            if new_count == 0:
                continue
            current_ranges.append(LineRange(new_start, new_start + new_count - 1))

        _flush()
        return result

    @classmethod
    def parse_for_language(
        cls,
        diff_text: str,
        extensions: Iterable[str],
    ) -> Dict[str, FileDiff]:
        """Like :meth:`parse`, restricted to paths ending in one of *extensions*."""
        exts = tuple(extensions)
        return {
            path: file_diff
            for path, file_diff in cls.parse(diff_text).items()
            if file_diff.has_extension(exts)
        }
