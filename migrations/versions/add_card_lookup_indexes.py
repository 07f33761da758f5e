"""Add indexes for card lookups by board, column and parent card.

Revision ID: add_card_lookup_indexes
Revises: 7c2e91a4d3b0
Create Date: 2026-10-14

"""

from alembic import op


revision = "add_card_lookup_indexes"
down_revision = "7c2e91a4d3b0"
branch_labels = None
depends_on = None


def upgrade():
    # Cards - listed per board and per column
    op.create_index("ix_cards_board_id", "cards", ["board_id"])
    op.create_index("ix_cards_column_id", "cards", ["column_id"])
    op.create_index("ix_cards_lifecycle", "cards", ["lifecycle"])

    # Children of a card
    op.create_index("ix_comments_card_id", "comments", ["card_id"])
    op.create_index("ix_attachments_card_id", "attachments", ["card_id"])

    # Audit feed per account
    op.create_index("ix_audit_events_account_id", "audit_events", ["account_id"])


def downgrade():
    op.drop_index("ix_audit_events_account_id", table_name="audit_events")
    op.drop_index("ix_attachments_card_id", table_name="attachments")
    op.drop_index("ix_comments_card_id", table_name="comments")
    op.drop_index("ix_cards_lifecycle", table_name="cards")
    op.drop_index("ix_cards_column_id", table_name="cards")
    op.drop_index("ix_cards_board_id", table_name="cards")
