"""
anchorscan/detectors/check_comment.py
═════════════════════════════════════

MISSING_CHECK_COMMENT — ``AccountInfo`` / ``UncheckedAccount`` fields of
an accounts context must explain, in a ``/// CHECK:`` doc comment, why
the account needs no validation.  Anchor refuses to build without it;
reporting it in the editor saves a compile round-trip.
"""

from __future__ import annotations

from ..anchor import AccountCategory, AccountField, extract_contexts
from ..diagnostics import Severity
from ..syntax import SourceTree
from .base import Detector

CHECK_MARKER = "CHECK"


def has_check_doc(field: AccountField) -> bool:
    for line in field.docs:
        if not line.startswith(CHECK_MARKER):
            continue
        rest = line[len(CHECK_MARKER):]
        if not rest or not (rest[0].isalnum() or rest[0] == "_"):
            return True
    return False


class MissingCheckCommentDetector(Detector):

    id = "MISSING_CHECK_COMMENT"
    name = "Missing CHECK Comment"
    description = (
        "Detects AccountInfo and UncheckedAccount fields without required "
        "/// CHECK: doc comments"
    )
    message = "Missing /// CHECK: doc comment for unchecked account"
    default_severity = Severity.ERROR

    def collect(self, tree: SourceTree) -> None:
        for ctx in extract_contexts(tree).values():
            for field in ctx.fields:
                if field.category is not AccountCategory.RAW_ACCOUNT or has_check_doc(field):
                    continue
                self._emit(
                    field.range,
                    f"Missing /// CHECK: doc comment for {field.type_name} field "
                    f"'{field.name}'. Add a doc comment explaining why this account "
                    f"doesn't need validation. Example:\n"
                    f"/// CHECK: This account is used for [explain purpose and why it's safe]",
                )
