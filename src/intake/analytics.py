"""
Fire-and-forget analytics for the intake workflow
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

EventSink = Callable[[str, Dict[str, Any]], None]


class Analytics:
    """Emits workflow events to an optional sink; sink errors never propagate."""

    def __init__(self, sink: Optional[EventSink] = None):
        self.sink = sink

    def track(self, event: str, **properties: Any) -> None:
        logger.debug(f"analytics event {event}: {properties}")
        if self.sink is None:
            return
        try:
            self.sink(event, properties)
        except Exception as e:
            logger.warning(f"Analytics sink failed for {event}: {e}")

    def media_selected(self, kind: str) -> None:
        self.track("media_selected", media_type=kind)

    def ai_result_shown(
        self,
        category: str,
        severity: str,
        confidence: float,
        geo_method: str
    ) -> None:
        self.track(
            "ai_result_shown",
            category=category,
            severity=severity,
            confidence=confidence,
            geo_method=geo_method,
        )
