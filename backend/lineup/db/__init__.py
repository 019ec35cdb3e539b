"""Persistence layer: the declarative base plus the ``users`` and ``tasks`` models.

Importing the package registers both tables on ``Base.metadata``.
"""

from lineup.db.base import Base
from lineup.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
