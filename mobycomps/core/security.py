import uuid
from datetime import timedelta, datetime, timezone
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from jose import jwt
from .config import SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, JWT_ISSUER, JWT_AUDIENCE

password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return password_hasher.verify(hashed_password, password)
    except (VerificationError, InvalidHashError):
        return False


def password_needs_rehash(hashed_password: str) -> bool:
    return password_hasher.check_needs_rehash(hashed_password)


def create_access_token(subject: str | int, *, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    issued_at = int(datetime.now(timezone.utc).timestamp())
    claims = {
        "sub": str(subject),
        "iat": issued_at,
        "nbf": issued_at,
        "exp": issued_at + int(timedelta(minutes=expires_minutes).total_seconds()),
        "jti": uuid.uuid4().hex,
        "typ": "access",
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
