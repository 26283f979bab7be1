"""
Flask CLI commands for store management.

Commands:
- flask init-db: Create all tables
- flask create-admin: Create a back-office user
"""

import click
import re
from storefront import database
from storefront.database import db_session
from storefront.exceptions import BusinessLogicError
from storefront.services.account_service import create_staff_user


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        database.create_all()
        click.echo(click.style('✅ Database tables created', fg='green'))

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
    @click.option('--role', default='admin', type=click.Choice(['admin', 'manager', 'support']),
                  show_default=True, help='Back-office role')
    def create_admin(email, password, role):
        """Create a new user for the back office."""

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            click.echo(click.style('❌ Invalid email. Use the format user@example.com', fg='red'))
            return

        if len(password) < 6:
            click.echo(click.style('❌ Password must be at least 6 characters.', fg='red'))
            return

        try:
            user = create_staff_user(db_session, email, password, role=role)
        except BusinessLogicError as e:
            click.echo(click.style(f'❌ {e.message}', fg='red'))
            return

        click.echo(click.style(f'\n✅ {role.capitalize()} created', fg='green', bold=True))
        click.echo(f'   Email: {user.email}')
        click.echo(f'   ID: {user.id}')
