"""User model.

A person inside an account. Imports run as a user: their account is the
target, and they become the creator of every imported card and comment.
"""

import uuid

from kanban.extensions import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    account_id = db.Column(
        db.String(36), db.ForeignKey("accounts.id"), nullable=False
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    account = db.relationship("Account", back_populates="users")
    created_cards = db.relationship(
        "Card",
        foreign_keys="Card.creator_user_id",
        back_populates="creator",
        lazy="dynamic",
    )
    comments = db.relationship(
        "Comment", back_populates="creator", lazy="dynamic"
    )
    audit_events = db.relationship(
        "AuditEvent", back_populates="actor", lazy="dynamic"
    )

    def __repr__(self):
        return f"<User {self.email}>"
