import secrets

from passlib.context import CryptContext
from passlib.hash import pbkdf2_sha512

SALT_BYTES = 16
TOKEN_BYTES = 32


class PasswordHasher:
    """
    PBKDF2-SHA512 with a per-user random salt and a fixed, explicit round count.
    The salt is also embedded in the modular-crypt hash string, so verification
    only needs the stored hash.
    """
    def __init__(self, rounds: int):
        self.rounds = rounds
        self.context = CryptContext(
            schemes=["pbkdf2_sha512"],
            pbkdf2_sha512__rounds=rounds,
        )

    @staticmethod
    def new_salt() -> str:
        return secrets.token_hex(SALT_BYTES)

    def hash(self, password: str, salt: str) -> str:
        return pbkdf2_sha512.using(rounds=self.rounds, salt=bytes.fromhex(salt)).hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        return self.context.verify(password, password_hash)

    def dummy_verify(self) -> bool:
        # Burn one hash computation for unknown usernames
        return self.context.dummy_verify()


def new_session_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)
