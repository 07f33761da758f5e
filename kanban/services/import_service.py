"""Import service — load a ZIP export of cards into an account.

Archive layout:
    <number>.json            one card per file, number = card number
    <number>/<key>_<name>    attachments for that card

Each JSON file holds board, status, title, description (HTML, optional),
created_at, updated_at (ISO-8601) and an ordered comments list of
{body, created_at}.

Entries are processed one at a time in ascending card number. Each card is
committed on its own; a failing card is rolled back, logged and counted as
skipped, and the run moves on. Cards whose number already exists in the
account are skipped, which makes re-running an archive safe.
"""

import json
import logging
import os
import posixpath
import re
import shutil
import tempfile
import zipfile
import zlib
from datetime import datetime, timezone

from kanban.extensions import db
from kanban.models.audit import AuditEvent
from kanban.models.card import Attachment
from kanban.services import board_service, card_service, storage_service

logger = logging.getLogger(__name__)

# Statuses that describe a card's lifecycle rather than a column.
TERMINAL_STATUSES = frozenset({"Done", "Not now", "Maybe?"})

# "Maybe?" has no transition: the card stays open without a column.
LIFECYCLE_TRANSITIONS = {
    "Done": card_service.close_card,
    "Not now": card_service.postpone_card,
}

CARD_ENTRY_RE = re.compile(r"^(\d+)\.json$")

REQUIRED_FIELDS = ("board", "status", "title", "created_at", "updated_at")

COUNTERS = ("boards", "cards", "comments", "attachments", "skipped")

# Longer attachment names are cut to fit the column.
MAX_FILENAME_LENGTH = Attachment.__table__.c.filename.type.length

# Per-attachment faults that are logged without failing the card. ZipFile.open
# raises NotImplementedError for unsupported compression and RuntimeError for
# encrypted members.
ATTACHMENT_ERRORS = (
    OSError,
    EOFError,
    zipfile.BadZipFile,
    zlib.error,
    NotImplementedError,
    RuntimeError,
)


def parse_timestamp(value, field):
    """Parse an ISO-8601 string into an aware datetime (naive means UTC)."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{field}' must be an ISO-8601 string.")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"'{field}' is not a valid ISO-8601 timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_record(payload):
    """Turn a card JSON payload (bytes or str) into a record dict.

    Comments without a created_at inherit the card's created_at; comments
    with a blank body are dropped.

    Raises:
        ValueError: On malformed JSON or missing/invalid fields.
    """
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("Card payload must be a JSON object.")

    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    for field in ("board", "status", "title"):
        if not isinstance(data[field], str):
            raise ValueError(f"'{field}' must be a string.")

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        raise ValueError("'description' must be a string.")

    created_at = parse_timestamp(data["created_at"], "created_at")
    updated_at = parse_timestamp(data["updated_at"], "updated_at")

    raw_comments = data.get("comments") or []
    if not isinstance(raw_comments, list):
        raise ValueError("'comments' must be a list.")

    comments = []
    for i, raw in enumerate(raw_comments):
        if not isinstance(raw, dict):
            raise ValueError(f"Comment {i} must be a JSON object.")
        body = raw.get("body")
        if not isinstance(body, str) or not body.strip():
            logger.debug(f"Dropping blank comment {i}")
            continue
        if raw.get("created_at"):
            comment_at = parse_timestamp(raw["created_at"], f"comments[{i}].created_at")
        else:
            comment_at = created_at
        comments.append({"body": body, "created_at": comment_at})

    return {
        "board": data["board"].strip(),
        "status": data["status"].strip(),
        "title": data["title"],
        "description": description or None,
        "created_at": created_at,
        "updated_at": updated_at,
        "comments": comments,
    }


def attachment_filename(entry_name):
    """Recover the original filename from an attachment entry name.

    "7/abc123_report.pdf" -> "report.pdf". Only the segment up to the first
    underscore is dropped; names without an underscore are kept as-is.
    """
    basename = posixpath.basename(entry_name)
    _key, sep, original = basename.partition("_")
    if sep and original:
        return original
    return basename


def _empty_counts():
    return dict.fromkeys(COUNTERS, 0)


class ArchiveImporter:
    """Imports one archive on behalf of one user.

    The board and column caches, and the counters, live for a single run.
    """

    def __init__(self, user, progress=None):
        self.account_id = user.account_id
        self.user_id = user.id
        self.progress = progress
        self.stats = _empty_counts()
        self._boards = {}
        self._columns = {}
        self._fresh_keys = []
        self._stored_paths = []

    # ─── Archive scanning ────────────────────────────────────────

    @staticmethod
    def scan(archive):
        """Split archive entries into card entries and attachments.

        Returns:
            Tuple of (cards, strays, attachments):
                cards: [(number, ZipInfo)] sorted by number
                strays: top-level .json entries without a numeric name
                attachments: {number: [ZipInfo]} in archive order
        """
        cards = []
        strays = []
        attachments = {}
        for info in archive.infolist():
            if info.is_dir():
                continue
            name = info.filename
            if "/" not in name:
                match = CARD_ENTRY_RE.match(name)
                if match:
                    cards.append((int(match.group(1)), info))
                elif name.lower().endswith(".json"):
                    strays.append(info)
                continue
            head, _, rest = name.partition("/")
            if head.isdigit() and rest:
                attachments.setdefault(int(head), []).append(info)
        cards.sort(key=lambda pair: pair[0])
        return cards, strays, attachments

    # ─── Run ─────────────────────────────────────────────────────

    def run(self, archive_path):
        """Import every card entry in the archive. Returns the counters dict.

        Raises:
            FileNotFoundError: If the archive does not exist.
            zipfile.BadZipFile: If the file is not a ZIP archive.
        """
        if not os.path.isfile(archive_path):
            raise FileNotFoundError(f"Archive not found: {archive_path}")

        with zipfile.ZipFile(archive_path) as archive:
            cards, strays, attachments = self.scan(archive)

            for info in strays:
                logger.warning(f"Skipping {info.filename}: name is not a card number")
                self.stats["skipped"] += 1

            total = len(cards)
            for current, (number, info) in enumerate(cards, start=1):
                counts, reason = self._process_entry(
                    archive, info, number, attachments.get(number, [])
                )
                if counts is None:
                    self.stats["skipped"] += 1
                else:
                    for key, value in counts.items():
                        self.stats[key] += value
                if self.progress is not None:
                    self.progress(current, total)

        self._record_run(archive_path)
        return dict(self.stats)

    def _process_entry(self, archive, info, number, attachment_infos):
        """Import one card entry.

        Returns:
            (counts, None) on success, (None, reason) when skipped.
        """
        self._fresh_keys = []
        self._stored_paths = []
        try:
            if card_service.card_number_taken(self.account_id, number):
                logger.info(f"Skipping {info.filename}: card #{number} already exists")
                return None, "exists"
            counts = self._import_card(archive, number, info, attachment_infos)
            db.session.commit()
            return counts, None
        except Exception as e:
            db.session.rollback()
            self._evict_fresh()
            self._discard_stored_files()
            logger.error(f"Skipping {info.filename}: {e}")
            return None, str(e)

    def _import_card(self, archive, number, info, attachment_infos):
        record = parse_record(archive.read(info))
        counts = _empty_counts()

        board = self._board(record["board"], counts)

        column = None
        if record["status"] not in TERMINAL_STATUSES:
            column = self._column(board, record["status"])

        card = card_service.create_card(
            account_id=self.account_id,
            board=board,
            creator_user_id=self.user_id,
            title=record["title"],
            description=record["description"],
            column=column,
            number=number,
            created_at=record["created_at"],
            updated_at=record["updated_at"],
            status="published",
            validate=False,
        )
        counts["cards"] = 1

        transition = LIFECYCLE_TRANSITIONS.get(record["status"])
        if transition is not None:
            transition(card, self.user_id, at=record["updated_at"])

        for comment in record["comments"]:
            card_service.add_comment(
                card, self.user_id, comment["body"], created_at=comment["created_at"]
            )
            counts["comments"] += 1

        counts["attachments"] = self._import_attachments(archive, card, attachment_infos)
        return counts

    def _import_attachments(self, archive, card, infos):
        """Attach each archive entry to the card. Returns how many succeeded.

        Every entry is staged through a temp file that is removed afterwards,
        whether or not the attach worked. A failed attachment is logged and
        does not fail the card. Stored paths are remembered so a card that is
        rolled back later can remove its files.
        """
        imported = 0
        for info in infos:
            filename = attachment_filename(info.filename)[:MAX_FILENAME_LENGTH]
            tmp = None
            try:
                # No suffix: archive names can exceed filesystem limits.
                tmp = tempfile.NamedTemporaryFile(delete=False, prefix="kanban-import-")
                with tmp, archive.open(info) as src:
                    shutil.copyfileobj(src, tmp)
                attachment = card_service.attach_file(card, tmp.name, filename)
                self._stored_paths.append(attachment.storage_path)
                imported += 1
            except ATTACHMENT_ERRORS as e:
                logger.error(f"Failed to attach {info.filename} to card #{card.number}: {e}")
            finally:
                if tmp is not None:
                    try:
                        os.unlink(tmp.name)
                    except FileNotFoundError:
                        pass
        return imported

    # ─── Caches ──────────────────────────────────────────────────

    def _board(self, name, counts):
        board = self._boards.get(name)
        if board is None:
            board, created = board_service.get_or_create_board(
                self.account_id, name, creator_user_id=self.user_id
            )
            self._boards[name] = board
            self._fresh_keys.append((self._boards, name))
            if created:
                counts["boards"] += 1
        return board

    def _column(self, board, name):
        key = (board.name, name)
        column = self._columns.get(key)
        if column is None:
            column, _created = board_service.get_or_create_column(board, name)
            self._columns[key] = column
            self._fresh_keys.append((self._columns, key))
        return column

    def _evict_fresh(self):
        """Forget cache entries added by an entry that was rolled back."""
        for cache, key in self._fresh_keys:
            cache.pop(key, None)
        self._fresh_keys = []

    def _discard_stored_files(self):
        """Delete files uploaded for an entry that was rolled back."""
        for storage_path in self._stored_paths:
            storage_service.delete_file(storage_path)
        self._stored_paths = []

    def _record_run(self, archive_path):
        audit = AuditEvent(
            account_id=self.account_id,
            actor_user_id=self.user_id,
            action="archive.imported",
            metadata_={"archive": os.path.basename(archive_path), **self.stats},
        )
        db.session.add(audit)
        db.session.commit()
