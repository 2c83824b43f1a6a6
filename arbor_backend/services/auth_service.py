"""User registration, login and JWT handling."""
import logging
from datetime import timedelta
import jwt
from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash, check_password_hash
from ..models import db, User
from .login_attempts import InMemoryLoginAttemptStore
from .result import ServiceResult
from arbor_shared.enums import ErrorKind, TokenType
from arbor_shared.errors import TokenExpiredError, InvalidTokenError, ValidationError
from arbor_shared.models import now
from arbor_shared.schemas import Actor, serialize_user
from arbor_shared.validation import Validator

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid username or password'


class PasswordService:
    """Password hashing with werkzeug."""

    def hash_password(self, password):
        return generate_password_hash(password)

    def compare_password(self, password, password_hash):
        return check_password_hash(password_hash, password)


class TokenService:
    """JWT access and refresh tokens."""

    def __init__(self, secret_key, algorithm='HS256', access_ttl_hours=24, refresh_ttl_days=7):
        self.__secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = timedelta(hours=access_ttl_hours)
        self.refresh_ttl = timedelta(days=refresh_ttl_days)

    def __repr__(self):
        return f"<TokenService algorithm={self.algorithm}>"

    def generate_token(self, user):
        issued_at = now()
        payload = {
            'id': user.id,
            'username': user.username,
            'email': user.email,
            'fullname': user.full_name,
            'isAdmin': bool(user.is_admin),
            'type': TokenType.ACCESS.value,
            'iat': issued_at,
            'exp': issued_at + self.access_ttl,
        }
        return jwt.encode(payload, self.__secret_key, algorithm=self.algorithm)

    def generate_refresh_token(self, user):
        issued_at = now()
        payload = {
            'id': user.id,
            'username': user.username,
            'type': TokenType.REFRESH.value,
            'iat': issued_at,
            'exp': issued_at + self.refresh_ttl,
        }
        return jwt.encode(payload, self.__secret_key, algorithm=self.algorithm)

    def verify_token(self, token, expected_type=TokenType.ACCESS):
        """Decode and check a token.

        Returns:
            dict: The token claims

        Raises:
            TokenExpiredError: If the token has expired
            InvalidTokenError: If the token is malformed, forged or of the wrong type
        """
        try:
            payload = jwt.decode(token, self.__secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError('Token has expired') from e
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid token detail: {e}")
            raise InvalidTokenError('Invalid token') from e

        if payload.get('type') != expected_type.value:
            logger.warning(f"Token type mismatch: expected {expected_type.value}, got {payload.get('type')}")
            raise InvalidTokenError('Invalid token')
        return payload

    @staticmethod
    def extract_token_from_header(auth_header):
        """Return the token of a 'Bearer <token>' header, or None."""
        if not auth_header:
            return None
        parts = auth_header.split(' ')
        if len(parts) != 2 or parts[0] != 'Bearer' or not parts[1]:
            return None
        return parts[1]


class AuthService:
    """Accounts and credentials.

    The login attempt store is injected so lockout state has an explicit owner;
    by default it lives in memory for the lifetime of the process.
    """

    def __init__(self, token_service, password_service=None, attempt_store=None, session=None):
        self.token_service = token_service
        self.password_service = password_service or PasswordService()
        self.attempt_store = attempt_store or InMemoryLoginAttemptStore()
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _find_user(self, username):
        return self.session.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()

    def register_user(self, username, password, email, full_name):
        """Create an account. The first account registered becomes an admin."""
        try:
            Validator.validate_required(username, 'Username')
            Validator.validate_required(full_name, 'Full name')
            email = Validator.validate_email(email)
            Validator.validate_password(password)
        except ValidationError as e:
            return ServiceResult.fail(str(e), ErrorKind.VALIDATION)

        try:
            if self._find_user(username) is not None:
                return ServiceResult.fail('Username already exists', ErrorKind.CONFLICT)
            if self.session.execute(select(User).where(User.email == email)).scalar_one_or_none():
                return ServiceResult.fail('Email already exists', ErrorKind.CONFLICT)

            is_first_user = self.session.execute(select(func.count()).select_from(User)).scalar_one() == 0
            user = User(
                username=username,
                password_hash=self.password_service.hash_password(password),
                email=email,
                full_name=full_name,
                is_admin=is_first_user,
                created_at=now(),
            )
            self.session.add(user)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Registration error: {e}", exc_info=True)
            return ServiceResult.fail('Registration failed. Please try again', ErrorKind.STORE)

        logger.info(f"Registered user {user.username} (admin={user.is_admin})")
        return ServiceResult.ok('User registered successfully', serialize_user(user))

    def login(self, username, password):
        if self.attempt_store.is_blocked(username):
            remaining = self.attempt_store.remaining_block_minutes(username)
            logger.warning(f"Login attempt for blocked user {username}")
            return ServiceResult.fail(
                f'Account is temporarily blocked. Try again in {remaining} minutes.',
                ErrorKind.AUTHENTICATION
            )

        try:
            user = self._find_user(username)
            if user is None or not self.password_service.compare_password(password, user.password_hash):
                self.attempt_store.record_failure(username)
                logger.info(f"Failed login for {username}")
                return ServiceResult.fail(INVALID_CREDENTIALS, ErrorKind.AUTHENTICATION)

            self.attempt_store.clear(username)
            user.last_login = now()
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Login error: {e}", exc_info=True)
            return ServiceResult.fail('Login failed. Please try again', ErrorKind.STORE)

        logger.info(f"User {username} logged in")
        return ServiceResult.ok('Login successful', {
            'token': self.token_service.generate_token(user),
            'refreshToken': self.token_service.generate_refresh_token(user),
            'user': serialize_user(user),
        })

    def refresh(self, refresh_token):
        """Exchange a refresh token for a new access token."""
        try:
            claims = self.token_service.verify_token(refresh_token, expected_type=TokenType.REFRESH)
        except (TokenExpiredError, InvalidTokenError) as e:
            return ServiceResult.fail(str(e), ErrorKind.AUTHENTICATION)

        user = self.session.get(User, claims.get('id'))
        if user is None:
            return ServiceResult.fail('Invalid token', ErrorKind.AUTHENTICATION)
        return ServiceResult.ok('Token refreshed', {'token': self.token_service.generate_token(user)})

    def reset_password(self, username, new_password, confirm_new_password):
        if new_password != confirm_new_password:
            return ServiceResult.fail('Passwords do not match', ErrorKind.VALIDATION)
        try:
            Validator.validate_password(new_password)
        except ValidationError as e:
            return ServiceResult.fail(str(e), ErrorKind.VALIDATION)

        try:
            user = self._find_user(username)
            if user is None:
                return ServiceResult.fail('User not found', ErrorKind.NOT_FOUND)
            user.password_hash = self.password_service.hash_password(new_password)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Password reset error: {e}", exc_info=True)
            return ServiceResult.fail('Password reset failed', ErrorKind.STORE)

        self.attempt_store.clear(username)
        logger.info(f"Password reset for {username}")
        return ServiceResult.ok('Password reset successfully')

    def verify_token(self, token):
        """Resolve an access token to the Actor it was issued for."""
        return Actor.coerce(self.token_service.verify_token(token))

    def update_user(self, user_id, changes):
        """Apply admin edits to an account; ``changes`` uses model field names."""
        if changes.get('email'):
            try:
                changes['email'] = Validator.validate_email(changes['email'])
            except ValidationError as e:
                return ServiceResult.fail(str(e), ErrorKind.VALIDATION)

        try:
            user = self.session.get(User, user_id)
            if user is None:
                return ServiceResult.fail('User not found', ErrorKind.NOT_FOUND)

            clash = self.session.execute(
                select(User).where(
                    User.id != user_id,
                    or_(User.username == changes.get('username'), User.email == changes.get('email')),
                )
            ).scalars().first()
            if clash is not None:
                return ServiceResult.fail('Username or email already in use', ErrorKind.CONFLICT)

            password = changes.pop('password', None)
            if password:
                user.password_hash = self.password_service.hash_password(password)
            for key, value in changes.items():
                if value is not None:
                    setattr(user, key, value)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"User update error: {e}", exc_info=True)
            return ServiceResult.fail('Failed to update user', ErrorKind.STORE)

        logger.info(f"Updated user {user_id}")
        return ServiceResult.ok('User updated successfully', serialize_user(user))

    def delete_user(self, user_id):
        try:
            user = self.session.get(User, user_id)
            if user is None:
                return ServiceResult.fail('User not found', ErrorKind.NOT_FOUND)
            self.session.delete(user)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"User delete error: {e}", exc_info=True)
            return ServiceResult.fail('Failed to delete user', ErrorKind.STORE)

        logger.info(f"Deleted user {user_id}")
        return ServiceResult.ok('User removed')

    def list_users(self):
        users = self.session.execute(select(User).order_by(User.full_name)).scalars()
        return ServiceResult.ok('Users retrieved', [serialize_user(user) for user in users])
