"""Domain Types — enums and identity aliases shared across the codebase.

Invariants:
    - All valid states encoded as Enums — no raw string matching
    - str Enums: values are the exact strings stored in the database
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

PostId = NewType("PostId", int)
UserId = NewType("UserId", int)


# ─── Enums ───────────────────────────────────────────────────────

class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class BoardPrivacy(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class IntegrationType(str, Enum):
    """Integration types known to the registry — maps to integration_providers.type."""
    GITHUB = "github"


class LinkStatus(str, Enum):
    """PostIntegrationLink.status — mirrors the remote issue state."""
    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"


# Status names treated as "done" when every linked issue closes, in lookup order
COMPLETED_STATUS_NAMES: tuple[str, ...] = ("Complete", "Completed", "Done")
