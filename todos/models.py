"""
todos/models.py -- Domain dataclass for the todo resource.

Pure data container with zero logic. Ownership and field rules live in
todos/store.py and the route layer.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Todo:
    """A task belonging to one credential record.

    owner_id is the users.id of the account that created it; it never changes
    after insert. id is None before the record is written to the database.
    """

    owner_id: int
    title: str
    description: str = ""
    due_date: Optional[str] = None  # YYYY-MM-DD
    is_completed: bool = False
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on every write
