"""ORM models exposed for metadata discovery."""
from lineup.db.models.task import Task
from lineup.db.models.user import User

__all__ = [
    "Task",
    "User",
]
