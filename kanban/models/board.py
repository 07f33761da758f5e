"""Board models.

- Board: named container for cards, unique by name within an account.
- Column: a named lane on a board, unique by name within the board.
"""

import uuid

from kanban.extensions import db


class Board(db.Model):
    __tablename__ = "boards"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    account_id = db.Column(
        db.String(36), db.ForeignKey("accounts.id"), nullable=False
    )
    creator_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint("account_id", "name", name="uq_boards_account_name"),
    )

    # --- Relationships ---
    account = db.relationship("Account", back_populates="boards")
    columns = db.relationship(
        "Column",
        back_populates="board",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Column.position",
    )
    cards = db.relationship("Card", back_populates="board", lazy="dynamic")

    def __repr__(self):
        return f"<Board {self.name}>"


class Column(db.Model):
    __tablename__ = "columns"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    board_id = db.Column(
        db.String(36),
        db.ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = db.Column(db.String(255), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint("board_id", "name", name="uq_columns_board_name"),
    )

    # --- Relationships ---
    board = db.relationship("Board", back_populates="columns")
    cards = db.relationship("Card", back_populates="column", lazy="dynamic")

    def __repr__(self):
        return f"<Column {self.name}>"
