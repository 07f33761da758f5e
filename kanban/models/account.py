"""Account model.

The top-level tenant container. Boards, cards and users are scoped to
exactly one account; card numbers are unique per account.
"""

import uuid

from kanban.extensions import db


class Account(db.Model):
    __tablename__ = "accounts"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    users = db.relationship("User", back_populates="account", lazy="dynamic")
    boards = db.relationship("Board", back_populates="account", lazy="dynamic")
    cards = db.relationship("Card", back_populates="account", lazy="dynamic")
    audit_events = db.relationship(
        "AuditEvent", back_populates="account", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Account {self.name}>"
