"""Account signup/signin and identity tokens.

Passwords are hashed with passlib's ``pbkdf2_sha256`` scheme.  Identity
tokens are HS256 JWTs (python-jose) carrying the user id, email and
username, valid for ``config.token_ttl_days`` (7 days by default).  Tokens
are verified statelessly and never revoked early.
"""

import logging
import re
from datetime import timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from .account_store import AccountStore
from .config import GalleryConfig
from .errors import AuthError, ValidationError
from .models import Account, Identity, utcnow

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    """Hash a plain-text password using PBKDF2-SHA256."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a candidate password against a stored hash."""
    return pwd_context.verify(plain_password, hashed)


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_username(username: str) -> bool:
    return bool(USERNAME_PATTERN.match(username or ""))


def validate_password(password: str) -> bool:
    return len(password or "") >= MIN_PASSWORD_LENGTH


class AuthGateway:
    """Issues and verifies identity tokens for registered accounts.

    Args:
        accounts: Account persistence.
        config: Supplies the JWT secret, algorithm and token lifetime.
    """

    def __init__(self, accounts: AccountStore, config: GalleryConfig) -> None:
        self.accounts = accounts
        self.secret = config.jwt_secret
        self.algorithm = config.jwt_algorithm
        self.ttl = timedelta(days=config.token_ttl_days)

    def issue_token(self, identity: Identity) -> str:
        """Sign a token for ``identity`` expiring after the configured lifetime."""
        now = utcnow()
        claims = {
            "sub": identity.user_id,
            "email": identity.email,
            "username": identity.username,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str | None) -> Identity | None:
        """Decode a token.

        Returns:
            The Identity, or None if the token is missing, expired, or its
            signature does not verify.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Rejected identity token: {e}")
            return None

        user_id = payload.get("sub")
        if not user_id:
            return None
        return Identity(
            user_id=user_id,
            email=payload.get("email", ""),
            username=payload.get("username", ""),
        )

    def signup(self, email: str, username: str, password: str) -> tuple[Account, str]:
        """Register a new account and issue its token.

        Raises:
            ValidationError: On missing or malformed fields.
            ConflictError: If the email or username is taken.
        """
        if not email or not username or not password:
            raise ValidationError("Email, username, and password are required")
        if not validate_email(email):
            raise ValidationError("Please enter a valid email address")
        if not validate_username(username):
            raise ValidationError(
                "Username must be 3-20 characters long and contain only letters, "
                "numbers, and underscores"
            )
        if not validate_password(password):
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        account = self.accounts.create(email, username, hash_password(password))
        return account, self.issue_token(self._identity_for(account))

    def signin(self, email: str, password: str) -> tuple[Account, str]:
        """Check credentials and issue a token.

        Raises:
            ValidationError: If either field is missing.
            AuthError: If the email is unknown or the password is wrong.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        account = self.accounts.find_by_email(email)
        if account is None or not verify_password(password, account.password_hash):
            logger.info("Failed sign-in attempt")
            raise AuthError("Invalid email or password")

        return account, self.issue_token(self._identity_for(account))

    @staticmethod
    def _identity_for(account: Account) -> Identity:
        return Identity(user_id=account.id, email=account.email, username=account.username)
