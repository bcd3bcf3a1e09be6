"""
Delegator key handling.

Wraps an ed25519 signing key (PyNaCl) that authorizes claim and bond
submissions. Only signed envelopes leave the process; the seed never does.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from compounder.errors import ConfigurationError

SEED_SIZE = 32


class DelegatorKey:
    """Signing key plus the delegator address it acts for."""

    def __init__(self, signing_key: SigningKey, address: Optional[str] = None):
        self._signing_key = signing_key
        self.public_key = signing_key.verify_key.encode().hex()
        self.address = address or self.public_key

    @classmethod
    def from_secret(cls, secret_hex: str, address: Optional[str] = None) -> "DelegatorKey":
        """Build from a hex-encoded 32-byte ed25519 seed."""
        try:
            seed = bytes.fromhex(secret_hex.strip().removeprefix("0x"))
        except (AttributeError, ValueError) as e:
            raise ConfigurationError("Secret key is not valid hex") from e
        if len(seed) != SEED_SIZE:
            raise ConfigurationError(
                f"Secret key must be {SEED_SIZE} bytes, got {len(seed)}"
            )
        return cls(SigningKey(seed), address=address)

    @classmethod
    def generate(cls) -> "DelegatorKey":
        return cls(SigningKey.generate())

    def sign_envelope(self, kind: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sign a transaction body.

        The signature covers the canonical JSON of
        {"kind", "body", "public_key", "timestamp"}.
        """
        payload = {
            "kind": kind,
            "body": body,
            "public_key": self.public_key,
            "timestamp": int(time.time()),
        }
        signed = self._signing_key.sign(canonical_json(payload))
        return {**payload, "signature": signed.signature.hex()}

    def __repr__(self) -> str:
        return f"DelegatorKey(address={self.address!r})"


def canonical_json(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def verify_envelope(envelope: Dict[str, Any]) -> bool:
    """Check an envelope produced by DelegatorKey.sign_envelope."""
    payload = {k: v for k, v in envelope.items() if k != "signature"}
    try:
        verify_key = VerifyKey(bytes.fromhex(envelope["public_key"]))
        verify_key.verify(canonical_json(payload), bytes.fromhex(envelope["signature"]))
    except (BadSignatureError, KeyError, ValueError):
        return False
    return True
