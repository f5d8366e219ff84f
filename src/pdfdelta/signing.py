"""Signed access to generated diff files.

Each published diff path is signed with an RSA private key (PKCS#1 v1.5,
SHA-256) and the base64 signature travels with the path. A file is only
served back when the signature verifies against the matching public key.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import ConfigError


@dataclass(frozen=True)
class SignedDocument:
    path: str
    signature: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def load_private_key(path: str | Path) -> rsa.RSAPrivateKey:
    """Load an unencrypted PEM (PKCS#1 or PKCS#8) RSA private key."""

    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"Unable to open signing key {path}: {exc}") from exc
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"Unable to parse signing key {path}: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ConfigError(f"Signing key {path} is not an RSA key")
    return key


def sign_path(private_key: rsa.RSAPrivateKey, path: str) -> str:
    signature = private_key.sign(path.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    return base64.b64encode(signature).decode("ascii")


def verify_path(public_key: rsa.RSAPublicKey, path: str, signature: str) -> bool:
    """Return ``True`` only for a well formed, valid signature of ``path``."""

    try:
        raw = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError):
        return False
    try:
        public_key.verify(raw, path.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        return False
    return True


def sign_document(private_key: rsa.RSAPrivateKey, path: str | Path) -> SignedDocument:
    text = str(path)
    return SignedDocument(path=text, signature=sign_path(private_key, text))
