"""
spothub/vouchers/codes.py
-------------------------
Redemption codes printed in the voucher QR.

Format:  SPOT-<12 chars of base32>
Example: SPOT-K7Q2M9XDA4TB

Codes come from `secrets`, so they cannot be predicted from earlier ones.
Uniqueness is enforced by the UNIQUE index on vouchers.code; the issuer
retries on the (astronomically rare) collision.
"""
import base64
import secrets

CODE_PREFIX = 'SPOT-'


def generate_voucher_code() -> str:
    raw = base64.b32encode(secrets.token_bytes(10)).decode('ascii')
    return f"{CODE_PREFIX}{raw[:12]}"


def scan_url(base_url: str, code: str) -> str:
    """Link encoded in the voucher QR."""
    return f"{base_url.rstrip('/')}/scan?qr={code}"
