"""Signed cookie values with key rotation."""

import base64
import hashlib
import hmac
import secrets
from typing import Optional, Sequence


class CookieSigner:
    """
    Sign and verify cookie values.

    The first key signs; every key verifies, so rotating a key means
    putting the new one first and keeping the old ones until cookies
    signed with them have expired.
    """

    def __init__(self, keys: Sequence[str]):
        if not keys:
            raise ValueError("At least one signing key is required")
        self.keys = tuple(keys)

    @staticmethod
    def _digest(key: str, value: str) -> str:
        mac = hmac.new(key.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(mac).rstrip(b"=").decode("ascii")

    def sign(self, value: str) -> str:
        return f"{value}.{self._digest(self.keys[0], value)}"

    def unsign(self, signed: str) -> Optional[str]:
        """Return the original value, or None when no key verifies it."""
        value, sep, signature = signed.rpartition(".")
        if not sep or not value:
            return None
        for key in self.keys:
            if secrets.compare_digest(signature, self._digest(key, value)):
                return value
        return None
