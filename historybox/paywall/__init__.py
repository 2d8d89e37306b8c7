"""
Region paywall (internal library).
Decision (access) and masking are pure; the region view service does the I/O.
"""
from historybox.paywall.access import decide_access, to_teaser, truncate_words
from historybox.paywall.audit import record_unlock
from historybox.paywall.models import (
    GateContext,
    GateDecision,
    PostView,
)

__all__ = [
    "GateContext",
    "GateDecision",
    "PostView",
    "decide_access",
    "to_teaser",
    "truncate_words",
    "record_unlock",
]
