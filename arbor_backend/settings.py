"""Backend settings loaded from the environment."""
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_JWT_SECRET = 'default-secret'


class BackendSettings(BaseSettings):
    """Backend configuration using Pydantic BaseSettings.

    Every field can be overridden with an ``ARBOR_``-prefixed environment
    variable, e.g. ``ARBOR_JWT_SECRET``.
    """

    # Database
    database_uri: str = 'sqlite+pysqlite:///arbor_census.db'

    # Token settings
    jwt_secret: str = INSECURE_JWT_SECRET
    jwt_algorithm: str = 'HS256'
    jwt_expiration_hours: int = 24
    refresh_expiration_days: int = 7

    # Login lockout
    max_login_attempts: int = 5
    lockout_minutes: int = 15

    # Listing
    default_page_size: int = 50
    max_page_size: int = 200

    # Logging
    log_level: str = 'INFO'
    log_dir: str = 'logs'

    model_config = SettingsConfigDict(env_prefix='ARBOR_', case_sensitive=False)

    def to_flask_config(self):
        """Return settings as upper-case Flask config keys."""
        config = {key.upper(): value for key, value in self.model_dump().items()}
        config['SQLALCHEMY_DATABASE_URI'] = config.pop('DATABASE_URI')
        return config
