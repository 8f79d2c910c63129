"""
anchorscan/detectors/init_space.py
══════════════════════════════════

MISSING_INITSPACE — ``#[account]`` data structs without
``#[derive(InitSpace)]``, which leaves the ``space = ...`` of their
``init`` constraints to be computed by hand.
"""

from __future__ import annotations

from ..anchor import derived_traits, is_account_data_struct
from ..diagnostics import Severity
from ..syntax import SourceTree, find_all
from .base import Detector


class MissingInitSpaceDetector(Detector):

    id = "MISSING_INITSPACE"
    name = "Missing InitSpace macro"
    description = "Detects Anchor account structs that don't use the #[derive(InitSpace)] macro"
    message = (
        "Accounts struct has no #[derive(InitSpace)] macro. Consider adding it "
        "for proper space allocation."
    )
    default_severity = Severity.WARNING

    def collect(self, tree: SourceTree) -> None:
        for node in find_all(tree.root, "struct_item"):
            if not is_account_data_struct(tree, node):
                continue
            if "InitSpace" in derived_traits(tree, node):
                continue
            self._emit(tree.line_range(node.start_point[0]))
