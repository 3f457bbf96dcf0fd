# seed.py
import click
from flask import current_app
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash

from .models import db, User


def init_db():
    # 1. Ensure tables exist
    db.create_all()

    # 2. Check if Admin exists
    admin = User.query.filter_by(role='admin').first()
    if admin:
        return admin, False

    # 3. Create the configured Admin
    cfg = current_app.config
    admin = User(
        username=cfg['ADMIN_USERNAME'],
        password_hash=generate_password_hash(cfg['ADMIN_PASSWORD']),
        role='admin',
        balance=0,
        wallet_address=cfg['ADMIN_WALLET'],
    )
    db.session.add(admin)
    db.session.commit()
    return admin, True


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create tables and seed the administrator account."""
    admin, created = init_db()
    if not created:
        click.echo("Admin already exists. Skipping seed.")
        return
    click.echo("-----------------------------------")
    click.echo("SYSTEM INITIALIZED")
    click.echo(f"Admin: {admin.username} ({admin.wallet_address})")
    click.echo("-----------------------------------")
