import click
import logging
from flask import current_app
from flask.cli import with_appcontext
from .models import db
from .repositories.tree_repository import TreeRepository

logger = logging.getLogger(__name__)


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the tables and seed the tree sequence counter."""
    logger.info("Starting database initialization")
    db.create_all()
    logger.info("Database tables created successfully")

    TreeRepository().ensure_sequence_counter()
    logger.info("Tree sequence counter ready")
    click.echo('Initialized the database.')


@click.command('create-user')
@click.argument('username')
@click.option('--email', prompt=True, help='Email address of the new user')
@click.option('--full-name', prompt=True, help='Display name of the new user')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--admin', is_flag=True, help='Grant administrator rights')
@with_appcontext
def create_user_command(username, email, full_name, password, admin):
    """Create a user account from the command line."""
    auth_service = current_app.extensions['arbor_auth']
    result = auth_service.register_user(username, password, email, full_name)
    if not result.success:
        raise click.ClickException(result.message)

    if admin and not result.data['isAdmin']:
        result = auth_service.update_user(result.data['id'], {'is_admin': True})
        if not result.success:
            raise click.ClickException(result.message)

    role = 'admin' if result.data['isAdmin'] else 'user'
    click.echo(f"Created {role} {username} (id {result.data['id']})")


@click.command('tree-stats')
@with_appcontext
def tree_stats_command():
    """Print dashboard counts."""
    result = current_app.extensions['arbor_trees'].dashboard.get_dashboard()
    if not result.success:
        raise click.ClickException(result.message)

    stats = result.data.stats
    click.echo(f"Trees: {stats.total_trees}")
    click.echo(f"Cities: {stats.total_cities}")
    click.echo(f"States: {stats.total_states}")
    for bucket in result.data.recent_activity:
        click.echo(f"  {bucket.label}: {bucket.value}")
