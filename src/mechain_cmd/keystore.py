"""Local signing account for mechain-cmd."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

DEFAULT_KEY_FILE = Path.home() / ".mechain_cmd" / "keystore" / "key.json"
PRIVATE_KEY_HEX_LENGTH = 64


class KeystoreError(ValueError):
    """Raised when key material is invalid or cannot be loaded."""


@dataclass(frozen=True)
class LocalAccount:
    private_key_hex: str
    address: str | None = None

    def private_key(self) -> ec.EllipticCurvePrivateKey:
        return ec.derive_private_key(int(self.private_key_hex, 16), ec.SECP256K1())

    @property
    def public_key_hex(self) -> str:
        public = self.private_key().public_key()
        return public.public_bytes(Encoding.X962, PublicFormat.CompressedPoint).hex()

    @property
    def owner(self) -> str:
        """Identity used for owner-scoped listings."""
        return self.address or self.public_key_hex


def _chmod_owner_only(path: Path) -> None:
    if os.name != "posix":
        return
    path.chmod(0o600)


def _normalize_private_key_hex(raw: object) -> str:
    if not isinstance(raw, str):
        raise KeystoreError("key file must contain private_key_hex")
    value = raw.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    if len(value) != PRIVATE_KEY_HEX_LENGTH:
        raise KeystoreError(f"private key must be {PRIVATE_KEY_HEX_LENGTH} hex characters")
    try:
        bytes.fromhex(value)
    except ValueError as exc:
        raise KeystoreError("private key must be valid hex") from exc
    try:
        ec.derive_private_key(int(value, 16), ec.SECP256K1())
    except ValueError as exc:
        raise KeystoreError("private key is out of range for secp256k1") from exc
    return value


def load_account(path: str | Path | None = None) -> tuple[LocalAccount, Path]:
    key_path = Path(path) if path else DEFAULT_KEY_FILE
    if not key_path.exists():
        raise KeystoreError(
            f"key file not found: {key_path} (run `mechain-cmd account create` first)"
        )
    try:
        payload = json.loads(key_path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise KeystoreError(f"invalid key file: {key_path}") from exc
    if not isinstance(payload, dict):
        raise KeystoreError(f"invalid key file: {key_path}")

    private_key_hex = _normalize_private_key_hex(payload.get("private_key_hex"))
    address = payload.get("address")
    if address is not None and (not isinstance(address, str) or not address.strip()):
        raise KeystoreError("address must be a non-empty string when present")

    _chmod_owner_only(key_path)
    account = LocalAccount(
        private_key_hex=private_key_hex,
        address=address.strip() if address else None,
    )
    return account, key_path


def create_account(
    path: str | Path | None = None,
    *,
    address: str | None = None,
    overwrite: bool = False,
) -> tuple[LocalAccount, Path]:
    key_path = Path(path) if path else DEFAULT_KEY_FILE
    if key_path.exists() and not overwrite:
        raise KeystoreError(f"key file already exists: {key_path}")
    key_path.parent.mkdir(parents=True, exist_ok=True)

    private = ec.generate_private_key(ec.SECP256K1())
    private_key_hex = f"{private.private_numbers().private_value:064x}"
    account = LocalAccount(private_key_hex=private_key_hex, address=address or None)

    serialized: dict[str, str] = {"private_key_hex": private_key_hex}
    if account.address:
        serialized["address"] = account.address
    key_path.write_text(json.dumps(serialized, indent=2) + "\n", encoding="utf-8")
    _chmod_owner_only(key_path)
    return account, key_path
