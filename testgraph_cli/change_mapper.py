"""Map changed line ranges onto declared function spans."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Set

from .models import FileDiff, FunctionDecl, FunctionId

logger = logging.getLogger(__name__)


class ChangeMapper:
    """Collects the functions whose span overlaps a changed range.

    File paths are matched by exact string equality against the diff keys;
    any normalization (symlinks, case, absolute vs. relative) must happen
    before the declarations reach this class.
    """

    def collect(
        self,
        file_diffs: Dict[str, FileDiff],
        declared_functions: Iterable[FunctionDecl],
    ) -> Set[FunctionId]:
        changed: Set[FunctionId] = set()
        if not file_diffs:
            return changed

        for decl in declared_functions:
            file_diff = file_diffs.get(decl.file_path)
            if file_diff is None:
                continue
            if file_diff.overlaps_with_range(decl.line_range):
                if decl.function_id not in changed:
                    logger.debug("Changed function: %s (%s)", decl.function_id, decl.line_range)
                changed.add(decl.function_id)

        return changed
