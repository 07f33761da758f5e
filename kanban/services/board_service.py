"""Board service — find-or-create for boards and their columns.

Functions flush but do NOT commit — the caller commits.
"""

from kanban.extensions import db
from kanban.models.board import Board, Column


def get_or_create_board(account_id, name, creator_user_id=None):
    """Find a board by name within an account, creating it if missing.

    Returns:
        Tuple of (board, created).

    Raises:
        ValueError: If name is blank.
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Board name is required.")

    board = Board.query.filter_by(account_id=account_id, name=name).first()
    if board is not None:
        return board, False

    board = Board(
        account_id=account_id,
        name=name,
        creator_user_id=creator_user_id,
    )
    db.session.add(board)
    db.session.flush()
    return board, True


def get_or_create_column(board, name):
    """Find a column by name on a board, appending a new one if missing.

    Returns:
        Tuple of (column, created).

    Raises:
        ValueError: If name is blank.
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Column name is required.")

    column = Column.query.filter_by(board_id=board.id, name=name).first()
    if column is not None:
        return column, False

    max_pos = (
        db.session.query(db.func.max(Column.position))
        .filter_by(board_id=board.id)
        .scalar()
    )
    max_pos = max_pos if max_pos is not None else -1

    column = Column(board_id=board.id, name=name, position=max_pos + 1)
    db.session.add(column)
    db.session.flush()
    return column, True
