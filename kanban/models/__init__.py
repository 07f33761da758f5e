# Models package — import all models here so Alembic can discover them.

from kanban.models.account import Account  # noqa: F401
from kanban.models.user import User  # noqa: F401
from kanban.models.board import Board, Column  # noqa: F401
from kanban.models.card import Card, Comment, Attachment  # noqa: F401
from kanban.models.audit import AuditEvent  # noqa: F401
