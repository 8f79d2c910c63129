"""
anchorscan/detectors/sysvar.py
══════════════════════════════

INEFFICIENT_SYSVAR_ACCOUNT — ``Sysvar<'info, T>`` fields in accounts
contexts.  Every sysvar implements ``Sysvar::get()``, which reads it
without the account having to be passed in the transaction.
"""

from __future__ import annotations

from ..anchor import AccountCategory, extract_contexts
from ..diagnostics import Severity
from ..syntax import SourceTree
from .base import Detector, mentions_anchor


class SysvarAccountDetector(Detector):

    id = "INEFFICIENT_SYSVAR_ACCOUNT"
    name = "Inefficient Sysvar Account Usage"
    description = (
        "Detects usage of Sysvar<'info, Type> accounts and suggests using the "
        "more efficient get() method"
    )
    message = (
        "Sysvar account usage detected. Consider using the get() method for "
        "better efficiency."
    )
    default_severity = Severity.WARNING

    def should_run(self, text: str) -> bool:
        return mentions_anchor(text) and "Sysvar" in text

    def collect(self, tree: SourceTree) -> None:
        for ctx in extract_contexts(tree).values():
            for field in ctx.fields:
                if field.category is not AccountCategory.SYSTEM_VARIABLE or not field.generic_args:
                    continue
                sysvar = field.generic_args[-1]
                self._emit(
                    field.range,
                    f"Consider using {sysvar}::get()? instead of Sysvar<'info, {sysvar}>. "
                    f"The get() method is more efficient as it doesn't require passing "
                    f"the sysvar account in the transaction.",
                )
