"""Alert passes: match processing and digest delivery."""

from .digest import should_send_digest, within_digest_window
from .models import AlertOutcome, AlertPassResult, DigestPassResult
from .runner import AlertPipeline

__all__ = [
    "AlertPipeline",
    "AlertOutcome",
    "AlertPassResult",
    "DigestPassResult",
    "should_send_digest",
    "within_digest_window",
]
