"""Card service — creation, numbering, lifecycle machine, comments, attachments.

Card descriptions and comment bodies are rich text: bleach.clean() keeps a
small formatting allowlist and strips everything else. Lifecycle changes
are enforced via Card.VALID_TRANSITIONS.

Functions flush but do NOT commit — the caller commits.
"""

import bleach
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from kanban.extensions import db
from kanban.models.audit import AuditEvent
from kanban.models.card import Attachment, Card, Comment
from kanban.services import storage_service

RICH_TEXT_TAGS = bleach.sanitizer.ALLOWED_TAGS | {
    "p", "br", "div", "span", "pre", "h1", "h2", "h3", "h4",
    "del", "s", "u", "hr", "figure", "figcaption", "img",
}
RICH_TEXT_ATTRIBUTES = {
    **bleach.sanitizer.ALLOWED_ATTRIBUTES,
    "img": ["src", "alt", "title", "width", "height"],
    "figure": ["data-content-type"],
}


def _sanitize_rich_text(html):
    """Clean rich text HTML down to the formatting allowlist."""
    if html is None:
        return None
    return bleach.clean(
        html,
        tags=RICH_TEXT_TAGS,
        attributes=RICH_TEXT_ATTRIBUTES,
        strip=True,
    ).strip()


def next_card_number(account_id):
    """Next free card number in an account (max + 1, starting at 1)."""
    current = (
        db.session.query(db.func.max(Card.number))
        .filter(Card.account_id == account_id)
        .scalar()
    )
    return (current or 0) + 1


def card_number_taken(account_id, number):
    return (
        db.session.query(Card.id)
        .filter_by(account_id=account_id, number=number)
        .first()
        is not None
    )


def create_card(
    account_id,
    board,
    creator_user_id,
    title,
    description=None,
    column=None,
    number=None,
    created_at=None,
    updated_at=None,
    status="published",
    validate=True,
):
    """Create a card on a board.

    Args:
        account_id: Account UUID string.
        board: Board the card lives on.
        creator_user_id: Creator's user UUID string.
        title: Card title.
        description: Rich text HTML (will be sanitized), optional.
        column: Column to place the card in, or None.
        number: Explicit card number. None assigns the next free one.
        created_at / updated_at: Explicit timestamps; default to now.
        status: One of Card.STATUSES.
        validate: When False, trusted input is stored without checks.

    Returns:
        The created Card object.

    Raises:
        ValueError: If validate is on and the title, number or status is invalid.
    """
    if validate:
        if not (title or "").strip():
            raise ValueError("Title is required.")
        if status not in Card.STATUSES:
            raise ValueError(
                f"Invalid status '{status}'. Must be one of: {', '.join(Card.STATUSES)}"
            )
        if number is not None and card_number_taken(account_id, number):
            raise ValueError(f"Card number {number} is already in use.")
        if column is not None and column.board_id != board.id:
            raise ValueError("Column does not belong to the card's board.")

    if number is None:
        number = next_card_number(account_id)

    now = datetime.now(timezone.utc)
    created_at = created_at or now
    updated_at = updated_at or created_at

    card = Card(
        account_id=account_id,
        board_id=board.id,
        column_id=column.id if column is not None else None,
        creator_user_id=creator_user_id,
        number=number,
        title=title,
        description=_sanitize_rich_text(description),
        status=status,
        lifecycle="open",
        created_at=created_at,
        updated_at=updated_at,
    )
    db.session.add(card)
    db.session.flush()

    return card


def _transition(card, new_lifecycle, actor_user_id, at=None):
    """Move a card to a new lifecycle state, enforcing valid transitions."""
    if new_lifecycle not in Card.LIFECYCLES:
        raise ValueError(
            f"Invalid lifecycle '{new_lifecycle}'. "
            f"Must be one of: {', '.join(Card.LIFECYCLES)}"
        )

    old_lifecycle = card.lifecycle

    if old_lifecycle == new_lifecycle:
        return card  # no-op

    allowed = Card.VALID_TRANSITIONS.get(old_lifecycle, [])
    if new_lifecycle not in allowed:
        raise ValueError(
            f"Cannot transition from '{old_lifecycle}' to '{new_lifecycle}'. "
            f"Allowed: {', '.join(allowed) if allowed else 'none'}"
        )

    at = at or datetime.now(timezone.utc)

    card.closed_at = None
    card.closed_by_user_id = None
    card.postponed_at = None
    card.postponed_by_user_id = None

    if new_lifecycle == "closed":
        card.closed_at = at
        card.closed_by_user_id = actor_user_id
    elif new_lifecycle == "postponed":
        card.postponed_at = at
        card.postponed_by_user_id = actor_user_id

    card.lifecycle = new_lifecycle
    card.updated_at = at
    db.session.flush()

    # Audit log
    audit = AuditEvent(
        account_id=card.account_id,
        actor_user_id=actor_user_id,
        action=f"card.{new_lifecycle}" if new_lifecycle != "open" else "card.reopened",
        metadata_={
            "card_id": card.id,
            "number": card.number,
            "old_lifecycle": old_lifecycle,
            "new_lifecycle": new_lifecycle,
        },
    )
    db.session.add(audit)
    db.session.flush()

    return card


def close_card(card, actor_user_id, at=None):
    return _transition(card, "closed", actor_user_id, at)


def postpone_card(card, actor_user_id, at=None):
    return _transition(card, "postponed", actor_user_id, at)


def reopen_card(card, actor_user_id, at=None):
    return _transition(card, "open", actor_user_id, at)


def add_comment(card, user_id, body, created_at=None):
    """Add a comment to a card.

    A comment with an explicit created_at is historical and leaves the
    card's updated_at alone; a live comment touches the card.

    Raises:
        ValueError: If the body is empty after sanitizing.
    """
    body = _sanitize_rich_text(body)
    if not body:
        raise ValueError("Comment cannot be empty.")

    if created_at is None:
        created_at = datetime.now(timezone.utc)
        card.updated_at = created_at

    comment = Comment(
        card_id=card.id,
        creator_user_id=user_id,
        body=body,
        created_at=created_at,
        updated_at=created_at,
    )
    db.session.add(comment)
    db.session.flush()
    return comment


def attach_file(card, path, filename, content_type=None):
    """Store a file from disk and attach it to a card.

    Args:
        card: Card to attach to.
        path: Local file path; the caller keeps ownership of it.
        filename: Original filename shown to users.
        content_type: MIME type; inferred from filename when None.

    Returns:
        The created Attachment.
    """
    content_type = content_type or storage_service.infer_content_type(filename)
    storage_path = storage_service.build_storage_path(card.id, filename)
    meta = storage_service.upload_path(path, storage_path, content_type)

    attachment = Attachment(
        card_id=card.id,
        filename=filename,
        storage_path=meta["storage_path"],
        content_type=meta["content_type"],
        byte_size=meta["byte_size"],
        public_url=meta["public_url"],
    )
    db.session.add(attachment)
    try:
        db.session.flush()
    except SQLAlchemyError:
        # No row will point at the stored file
        storage_service.delete_file(meta["storage_path"])
        raise
    return attachment
