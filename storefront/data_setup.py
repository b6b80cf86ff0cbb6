import logging
from pathlib import Path

import click
from flask import current_app
from flask.cli import AppGroup

from storefront import bcrypt
from storefront.affiliates import run_scheduled_payouts
from storefront.errors import StorefrontError
from storefront.services import get_services
from storefront.storage import KINDS

logger = logging.getLogger(__name__)


def initialize_storage(app=None):
    """Create the data and media directories the app writes into."""
    app = app or current_app
    data_dir = Path(app.config['DATA_DIR'])
    directories = [data_dir / f'{kind}s' for kind in KINDS]
    directories += [
        data_dir / 'affiliates',
        data_dir / 'affiliates' / 'payouts',
        Path(app.config['MEDIA_DIR'])
    ]
    for directory in directories:
        if directory.exists():
            logger.debug('Directory exists: %s', directory)
            continue
        directory.mkdir(parents=True, exist_ok=True)
        logger.info('Created directory: %s', directory)
    return directories


def create_admin(services, email, password):
    """Create an admin account directly, bypassing the first-admin-only rule."""
    if services.repository.find_one('user', email=email):
        raise StorefrontError('Email exists', status_code=400)
    return services.repository.save('user', {
        'email': email,
        'password': bcrypt.generate_password_hash(password).decode('utf-8'),
        'role': 'admin',
        'status': 'active',
        'lastLogin': None
    })


# Flask CLI commands registration
def register_cli_commands(app):
    """Register storage and payout commands with Flask CLI"""

    storage_cli = AppGroup('storage', help='Manage the on-disk record store.')
    payouts_cli = AppGroup('payouts', help='Affiliate payout jobs.')

    @storage_cli.command('init')
    def init_storage_command():
        """Creates the data and media directories."""
        for directory in initialize_storage(app):
            click.echo(f'  {directory}')
        click.echo('Storage ready.')

    @storage_cli.command('create-admin')
    @click.argument('email')
    @click.password_option()
    def create_admin_command(email, password):
        """Creates an admin account."""
        try:
            user = create_admin(get_services(), email, password)
        except StorefrontError as e:
            raise click.ClickException(e.message)
        click.echo(f"Admin {user['email']} created with id {user['id']}.")

    @payouts_cli.command('run')
    def run_payouts_command():
        """Pays every active affiliate whose balance reached the minimum payout."""
        services = get_services()
        payouts = run_scheduled_payouts(services.ledger, services.settings)
        for payout in payouts:
            click.echo(f"  affiliate {payout['affiliateId']}: {payout['amount']:.2f}")
        click.echo(f'{len(payouts)} payout(s) processed.')

    app.cli.add_command(storage_cli)
    app.cli.add_command(payouts_cli)
