# app/auth/passwords.py
# Salted scrypt hashes stored as "<hex hash>.<hex salt>".
import hashlib
import hmac
import secrets

SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LEN = 64
SALT_BYTES = 16


def _derive(password: str, salt: str) -> bytes:
    # The hex salt string itself is the scrypt salt, matching hashes written by the Node service
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LEN,
        maxmem=64 * 1024 * 1024,
    )


def hash_password(password: str) -> str:
    salt = secrets.token_hex(SALT_BYTES)
    return f"{_derive(password, salt).hex()}.{salt}"


def verify_password(password: str, stored: str) -> bool:
    try:
        hashed, salt = stored.split(".", 1)
        expected = bytes.fromhex(hashed)
    except (AttributeError, ValueError):
        return False
    if len(expected) != KEY_LEN or not salt:
        return False
    return hmac.compare_digest(expected, _derive(password, salt))


def random_password() -> str:
    """Unusable-by-humans placeholder for OAuth-only accounts."""
    return hash_password(secrets.token_urlsafe(32))


_DUMMY_HASH = hash_password(secrets.token_urlsafe(16))


def verify_dummy_password(password: str) -> bool:
    """Spend one scrypt derivation and fail; used when there is no account to check."""
    verify_password(password, _DUMMY_HASH)
    return False
