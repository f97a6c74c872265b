"""Canonical transaction envelopes and their signatures."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from uuid import uuid4

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from mechain_cmd.keystore import LocalAccount

SIGNATURE_FIELD = "signature_hex"
_REQUIRED_FIELDS = ("chain_id", "msg", "nonce", "created_at", "signer_public_key_hex")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _reject_floats(value: object) -> None:
    if isinstance(value, float):
        raise ValueError("floats are not allowed")
    if isinstance(value, dict):
        for nested_value in value.values():
            _reject_floats(nested_value)
    elif isinstance(value, (list, tuple)):
        for nested_value in value:
            _reject_floats(nested_value)


def build_envelope_to_sign(envelope: dict) -> bytes:
    """Canonical bytes of ``envelope`` without its signature."""
    payload = {key: value for key, value in envelope.items() if key != SIGNATURE_FIELD}
    for field in _REQUIRED_FIELDS:
        if field not in payload:
            raise ValueError(f"missing required field: {field}")
    if not isinstance(payload["msg"], dict) or not payload["msg"].get("type"):
        raise ValueError("msg must be a mapping with a type")
    _reject_floats(payload)
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def build_envelope(
    msg: dict,
    *,
    chain_id: str,
    signer_public_key_hex: str,
    nonce: str | None = None,
    created_at: str | None = None,
) -> dict:
    return {
        "chain_id": chain_id,
        "msg": msg,
        "nonce": nonce or str(uuid4()),
        "created_at": created_at or _utc_now_iso(),
        "signer_public_key_hex": signer_public_key_hex,
        SIGNATURE_FIELD: "",
    }


def sign_envelope(envelope: dict, account: LocalAccount) -> dict:
    signed = dict(envelope)
    canonical = build_envelope_to_sign(signed)
    signature = account.private_key().sign(canonical, ec.ECDSA(hashes.SHA256()))
    signed[SIGNATURE_FIELD] = signature.hex()
    return signed


def sign_message(msg: dict, account: LocalAccount, *, chain_id: str) -> dict:
    envelope = build_envelope(msg, chain_id=chain_id, signer_public_key_hex=account.public_key_hex)
    return sign_envelope(envelope, account)


def verify_envelope(envelope: dict) -> bool:
    try:
        public = ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256K1(), bytes.fromhex(envelope["signer_public_key_hex"])
        )
        signature = bytes.fromhex(envelope[SIGNATURE_FIELD])
        public.verify(signature, build_envelope_to_sign(envelope), ec.ECDSA(hashes.SHA256()))
    except (InvalidSignature, KeyError, ValueError):
        return False
    return True
