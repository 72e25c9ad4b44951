"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Importing this package registers the lifecycle hooks (models/hooks.py)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from ideabox.models.user import User  # noqa: F401
from ideabox.models.board import Board  # noqa: F401
from ideabox.models.status import Status  # noqa: F401
from ideabox.models.post import Post  # noqa: F401
from ideabox.models.comment import Comment  # noqa: F401
from ideabox.models.vote import Vote  # noqa: F401
from ideabox.models.post_subscription import PostSubscription  # noqa: F401
from ideabox.models.integration_provider import IntegrationProvider  # noqa: F401
from ideabox.models.integration_repository import IntegrationRepository  # noqa: F401
from ideabox.models.post_integration_link import PostIntegrationLink  # noqa: F401
from ideabox.models import hooks  # noqa: F401
