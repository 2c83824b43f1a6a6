"""Pytest configuration and fixtures for tree census tests."""
import pytest
import tempfile
import os
from arbor_backend.app import create_app
from arbor_backend.models import db, User
from arbor_shared.schemas import Actor


@pytest.fixture
def app(tmp_path):
    """Create and configure a test app instance."""
    # Create temporary database for testing
    db_fd, db_path = tempfile.mkstemp()

    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-secret-key-that-is-long-enough-for-hs256',
        'LOG_DIR': str(tmp_path / 'logs'),
        'LOG_LEVEL': 'DEBUG',
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()

    yield app

    # Cleanup
    with app.app_context():
        db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def app_ctx(app):
    """Run the test inside an application context."""
    with app.app_context():
        yield app


@pytest.fixture
def actor():
    return Actor(id=1, username='surveyor', email='surveyor@example.com', fullname='Ana Surveyor')


def _make_user(app, username, is_admin=False):
    with app.app_context():
        user = User(
            username=username,
            password_hash='unused',
            email=f'{username}@example.com',
            full_name=username.title(),
            is_admin=is_admin,
        )
        db.session.add(user)
        db.session.commit()
        token = app.extensions['arbor_auth'].token_service.generate_token(user)
        return user.id, {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(app):
    """Bearer headers for a regular user stored in the database."""
    _, headers = _make_user(app, 'surveyor')
    return headers


@pytest.fixture
def admin_headers(app):
    """Bearer headers for an administrator stored in the database."""
    _, headers = _make_user(app, 'chief', is_admin=True)
    return headers
