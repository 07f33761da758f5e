"""Card models.

- Card: the numbered work item on a board, optionally placed in a column.
- Comment: rich-text replies on a card.
- Attachment: a stored file belonging to a card.

Card.updated_at is set explicitly by card_service rather than by an
onupdate hook, so imported cards keep the timestamps of their source.
"""

import uuid

from kanban.extensions import db


class Card(db.Model):
    __tablename__ = "cards"

    # -- Publication statuses --
    STATUSES = ["drafted", "published"]

    # -- Lifecycle states --
    LIFECYCLES = ["open", "closed", "postponed"]

    # -- Valid lifecycle transitions (enforced in card_service) --
    VALID_TRANSITIONS = {
        "open": ["closed", "postponed"],
        "postponed": ["open", "closed"],
        "closed": ["open"],
    }

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    account_id = db.Column(
        db.String(36), db.ForeignKey("accounts.id"), nullable=False
    )
    board_id = db.Column(
        db.String(36), db.ForeignKey("boards.id"), nullable=False
    )
    column_id = db.Column(
        db.String(36), db.ForeignKey("columns.id"), nullable=True
    )
    creator_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    number = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(500), nullable=False)
    description = db.Column(db.Text, nullable=True)  # sanitized HTML
    status = db.Column(
        db.String(50), default="drafted", nullable=False
    )  # drafted | published
    lifecycle = db.Column(
        db.String(50), default="open", nullable=False
    )  # open | closed | postponed
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    postponed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    postponed_by_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint(
            "account_id", "number", name="uq_cards_account_number"
        ),
    )

    # --- Relationships ---
    account = db.relationship("Account", back_populates="cards")
    board = db.relationship("Board", back_populates="cards")
    column = db.relationship("Column", back_populates="cards")
    creator = db.relationship(
        "User",
        foreign_keys=[creator_user_id],
        back_populates="created_cards",
    )
    comments = db.relationship(
        "Comment",
        back_populates="card",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
    attachments = db.relationship(
        "Attachment",
        back_populates="card",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Attachment.created_at",
    )

    @property
    def is_closed(self):
        return self.lifecycle == "closed"

    @property
    def is_postponed(self):
        return self.lifecycle == "postponed"

    def __repr__(self):
        return f"<Card #{self.number} {self.title[:30]} ({self.lifecycle})>"


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    card_id = db.Column(
        db.String(36),
        db.ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    creator_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    body = db.Column(db.Text, nullable=False)  # sanitized HTML
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    card = db.relationship("Card", back_populates="comments")
    creator = db.relationship("User", back_populates="comments")

    def __repr__(self):
        return f"<Comment card={self.card_id}>"


class Attachment(db.Model):
    """File attached to a card (images, PDFs, documents, etc.).

    Files are stored in Supabase Storage (prod) or local filesystem (dev).
    """
    __tablename__ = "attachments"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    card_id = db.Column(
        db.String(36),
        db.ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    filename = db.Column(db.String(255), nullable=False)       # original filename
    storage_path = db.Column(db.String(500), nullable=False)   # path in bucket / on disk
    content_type = db.Column(db.String(100), nullable=False)   # e.g. image/png, application/pdf
    byte_size = db.Column(db.Integer, nullable=False)
    public_url = db.Column(db.String(1000), nullable=True)     # public URL for display
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    card = db.relationship("Card", back_populates="attachments")

    def __repr__(self):
        return f"<Attachment {self.filename} ({self.content_type})>"
