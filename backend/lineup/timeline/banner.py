"""Non-blocking status banner shown above the timeline."""
from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class Banner:
    def __init__(self) -> None:
        self.message: Optional[str] = None

    def show(self, message: str) -> None:
        logger.info("Timeline banner: %s", message)
        self.message = message

    def clear(self) -> None:
        self.message = None
