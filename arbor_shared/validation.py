"""Input validation utilities."""
import re
from pydantic import ValidationError as PydanticValidationError
from arbor_shared.errors import ValidationError
from arbor_shared.schemas import Actor, FieldError


class Validator:
    """Input validation utilities."""

    # Submission email check: printable ASCII other than @, a dot-separated domain
    SUBMISSION_EMAIL_PATTERN = re.compile(r'^[!-?A-~]+@[!-?A-~]+\.[!-?A-~]+$')
    # Stricter pattern for account registration
    EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9]+([._%+-][a-zA-Z0-9]+)*@([a-zA-Z0-9]+([.-][a-zA-Z0-9]+)*\.)+[a-zA-Z]{2,}$')
    PASSWORD_MIN_LENGTH = 8

    @staticmethod
    def validate_required(value, field_name):
        """Validate that a required field is not empty."""
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} is required")
        return value

    @staticmethod
    def validate_string_length(value, field_name, min_length=0, max_length=None):
        """Validate string length constraints."""
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        value = value.strip()
        if len(value) < min_length:
            raise ValidationError(f"{field_name} must be at least {min_length} characters")

        if max_length and len(value) > max_length:
            raise ValidationError(f"{field_name} must be no more than {max_length} characters")

        return value

    @staticmethod
    def validate_email(email):
        """Validate email format for user accounts."""
        email = email.strip()
        if not Validator.EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")
        return email

    @staticmethod
    def validate_password(password):
        if not isinstance(password, str) or len(password) < Validator.PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {Validator.PASSWORD_MIN_LENGTH} characters")
        return password

    @staticmethod
    def validate_tree_submission(submission, actor):
        """Check that a tree submission can be attributed to a valid actor.

        Only the actor is inspected; the descriptive fields of the submission
        are passed through untouched. Never raises.

        Args:
            submission: The tree payload (unused beyond signature symmetry)
            actor: Actor model, dict with the token claims, or None

        Returns:
            list[FieldError]: Empty when the submission may be stored
        """
        errors = []
        try:
            actor = Actor.coerce(actor)
        except PydanticValidationError:
            actor = None

        if actor is None or actor.id in (None, ''):
            errors.append(FieldError(field='authentication', message='User authentication required'))

        if actor is not None and actor.email and not Validator.SUBMISSION_EMAIL_PATTERN.match(actor.email):
            errors.append(FieldError(field='userEmail', message='Invalid email format'))

        return errors
