"""
Merge-and-audit core.

The pure pieces are importable from here without touching storage; the audit
log and record store live in core.audit and core.dao.
"""

from .locks import FieldLockTracker
from .merge import merge
from .differ import diff
from .highlight import HighlightCoordinator

__all__ = ["FieldLockTracker", "merge", "diff", "HighlightCoordinator"]
