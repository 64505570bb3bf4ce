"""
Process-wide availability flag for the vector service.

Owned by the application's startup sequence and handed to request handlers
and the retriever. It only turns on after the collection has been ensured.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from util.logging import logger


class VectorServiceState:
    """Tracks whether vector features may be used by request handlers."""

    def __init__(self):
        self.available = False
        self.reason: Optional[str] = "not initialized"
        self.changed_at = datetime.now()

    async def initialize(self, memory) -> bool:
        """
        Ensure the vector collection and flip the flag on success.

        Args:
            memory: VectorMemoryService (or None when vector features are disabled)

        Returns:
            True when the vector service is ready for use
        """
        if memory is None:
            self.mark_unavailable("vector features disabled")
            return False

        ready = await memory.ensure_collection()
        if ready:
            self.mark_available()
        else:
            self.mark_unavailable("collection initialization failed")
        return ready

    def mark_available(self) -> None:
        self.available = True
        self.reason = None
        self.changed_at = datetime.now()
        logger.log_service_state("vector", True)

    def mark_unavailable(self, reason: str) -> None:
        self.available = False
        self.reason = reason
        self.changed_at = datetime.now()
        logger.log_service_state("vector", False, reason)

    def teardown(self) -> None:
        """Reset at shutdown."""
        self.available = False
        self.reason = "shut down"
        self.changed_at = datetime.now()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "reason": self.reason,
            "changed_at": self.changed_at.isoformat()
        }
