"""bcrypt-backed password hashing."""

import bcrypt


class BcryptPasswordHasher:
    """Salted one-way hashing; the rest of the application treats it as opaque."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(
            plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        if not digest:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # Malformed stored digest.
            return False
