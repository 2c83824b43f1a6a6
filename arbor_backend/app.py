"""Flask application factory for the tree census backend."""
from flask import Flask
import logging
from collections import namedtuple
from pathlib import Path
from .models import db
from .blueprints import auth, trees, users
from .cli import init_db_command, create_user_command, tree_stats_command
from .logging_config import setup_logging
from .repositories.tree_repository import TreeRepository
from .services.auth_service import AuthService, TokenService
from .services.dashboard_service import DashboardService
from .services.login_attempts import InMemoryLoginAttemptStore
from .services.sync_service import SyncService
from .services.tree_service import TreeService
from .settings import BackendSettings, INSECURE_JWT_SECRET

logger = logging.getLogger(__name__)

TreeServices = namedtuple('TreeServices', ['trees', 'sync', 'dashboard'])


def init_services(app):
    """Build the service objects and attach them to ``app.extensions``.

    Services resolve the Flask-SQLAlchemy session per call, so one instance
    per app is shared by every request.
    """
    token_service = TokenService(
        app.config['JWT_SECRET'],
        algorithm=app.config['JWT_ALGORITHM'],
        access_ttl_hours=app.config['JWT_EXPIRATION_HOURS'],
        refresh_ttl_days=app.config['REFRESH_EXPIRATION_DAYS'],
    )
    attempt_store = InMemoryLoginAttemptStore(
        max_attempts=app.config['MAX_LOGIN_ATTEMPTS'],
        block_minutes=app.config['LOCKOUT_MINUTES'],
    )
    app.extensions['arbor_auth'] = AuthService(token_service, attempt_store=attempt_store)

    tree_service = TreeService(
        TreeRepository(),
        default_page_size=app.config['DEFAULT_PAGE_SIZE'],
        max_page_size=app.config['MAX_PAGE_SIZE'],
    )
    app.extensions['arbor_trees'] = TreeServices(
        trees=tree_service,
        sync=SyncService(tree_service),
        dashboard=DashboardService(),
    )


def create_app(test_config=None):
    """Flask application factory for the tree census backend.

    Creates and configures a Flask application instance with:
    - SQLAlchemy database integration
    - JWT authentication on every /api route
    - Blueprint registration for API endpoints
    - CLI command registration

    Args:
        test_config (dict, optional): Configuration overrides for testing

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__, instance_relative_config=True)

    if test_config is None:
        # Load the instance config, if it exists, when not testing
        config_loaded = app.config.from_pyfile('config.py', silent=True)
    else:
        app.config.from_mapping(test_config)
        config_loaded = False

    # Environment settings fill whatever the config file did not set
    for key, value in BackendSettings().to_flask_config().items():
        app.config.setdefault(key, value)
    app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)

    setup_logging(app.config['LOG_LEVEL'], app.config['LOG_DIR'])
    logger.info("Starting Flask application initialization")
    if config_loaded:
        logger.info("Loaded configuration from instance/config.py")
    elif test_config is not None:
        logger.info("Loaded test configuration")

    try:
        Path(app.instance_path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Could not create instance directory {app.instance_path}: {e}")

    if app.config['JWT_SECRET'] == INSECURE_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; tokens are signed with the insecure default secret")

    logger.info(f"Using database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")
    db.init_app(app)

    init_services(app)

    app.register_blueprint(auth.bp)
    app.register_blueprint(trees.bp)
    app.register_blueprint(users.bp)
    logger.debug("Registered auth, trees and users blueprints")

    auth.init_auth(app)

    app.cli.add_command(init_db_command)
    app.cli.add_command(create_user_command)
    app.cli.add_command(tree_stats_command)
    logger.info("CLI commands registered: init-db, create-user, tree-stats")

    logger.info("Flask application initialization completed successfully")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
