import os
import logging
import zipfile

import click
from flask import Flask

from kanban.config import config_by_name, parse_progress_every
from kanban.extensions import db, migrate


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from kanban import models  # noqa: F401

    # --- CLI commands ---
    register_cli(app)

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-account")
    @click.option("--name", required=True, help="Account name")
    @click.option("--email", required=True, help="Email of the account's first user")
    @click.option("--full-name", default=None, help="Display name for the user")
    def seed_account(name, email, full_name):
        """Create an account and a user that imports can run as.

        Usage:
            flask seed-account --name "Acme" --email ops@acme.test
        """
        from kanban.models.account import Account
        from kanban.models.user import User

        existing = User.query.filter_by(email=email).first()
        if existing:
            click.echo(f"User already exists: {email}")
            return

        account = Account(name=name)
        db.session.add(account)
        db.session.flush()

        user = User(
            email=email,
            full_name=full_name or name,
            account_id=account.id,
        )
        db.session.add(user)
        db.session.commit()

        click.echo(f"Created account {account.name} (id: {account.id})")
        click.echo(f"Created user {user.email} (id: {user.id})")

    @app.cli.command("import-archive")
    @click.argument(
        "archive",
        type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    )
    @click.option(
        "--email", required=True,
        help="Email of the user the import runs as; their account receives the cards.",
    )
    def import_archive(archive, email):
        """Import boards, cards, comments and attachments from a ZIP export.

        The archive holds one <number>.json file per card, with attachments
        for card N stored under N/<key>_<filename>. Cards whose number
        already exists in the account are skipped, so re-running is safe.

        Usage:
            flask import-archive export.zip --email ops@acme.test
        """
        from kanban.models.user import User
        from kanban.services.import_service import ArchiveImporter

        user = User.query.filter_by(email=email).first()
        if user is None:
            raise click.BadParameter(
                f"No user with email {email!r}.", param_hint="'--email'"
            )

        try:
            every = parse_progress_every(app.config.get("IMPORT_PROGRESS_EVERY", 1))
        except ValueError as e:
            raise click.ClickException(str(e))

        def progress(current, total):
            if current % every == 0 or current == total:
                click.echo(f"{current}/{total}")

        importer = ArchiveImporter(user, progress=progress)
        try:
            stats = importer.run(archive)
        except zipfile.BadZipFile as e:
            raise click.BadParameter(
                f"{archive} is not a ZIP archive ({e}).", param_hint="'ARCHIVE'"
            )

        click.echo("")
        click.echo("=" * 60)
        click.echo("Import complete!")
        click.echo("=" * 60)
        click.echo(f"  Boards created:        {stats['boards']}")
        click.echo(f"  Cards imported:        {stats['cards']}")
        click.echo(f"  Comments imported:     {stats['comments']}")
        click.echo(f"  Attachments imported:  {stats['attachments']}")
        click.echo(f"  Skipped:               {stats['skipped']}")
        click.echo("=" * 60)
