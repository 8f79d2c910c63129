"""
anchorscan.detectors
════════════════════

Concrete detectors, in the order the default registry runs them.
"""

from .arithmetic import UnsafeArithmeticDetector
from .base import Detector, DetectorIdentity
from .check_comment import MissingCheckCommentDetector
from .init_space import MissingInitSpaceDetector
from .instruction_attrs import (
    InstructionAttributeInvalidDetector,
    InstructionAttributeUnusedDetector,
)
from .lamports import ManualLamportsZeroingDetector
from .mutation import ImmutableAccountMutatedDetector
from .signer import MissingSignerDetector
from .sysvar import SysvarAccountDetector

ALL_DETECTORS = (
    MissingSignerDetector,
    ManualLamportsZeroingDetector,
    SysvarAccountDetector,
    ImmutableAccountMutatedDetector,
    InstructionAttributeUnusedDetector,
    InstructionAttributeInvalidDetector,
    UnsafeArithmeticDetector,
    MissingInitSpaceDetector,
    MissingCheckCommentDetector,
)

__all__ = [
    "Detector",
    "DetectorIdentity",
    "ALL_DETECTORS",
    "MissingSignerDetector",
    "ManualLamportsZeroingDetector",
    "SysvarAccountDetector",
    "ImmutableAccountMutatedDetector",
    "InstructionAttributeUnusedDetector",
    "InstructionAttributeInvalidDetector",
    "UnsafeArithmeticDetector",
    "MissingInitSpaceDetector",
    "MissingCheckCommentDetector",
]
