"""Hash chain primitives for the vote ledger.

Every block's ``vote_hash`` is SHA-256 over a canonical JSON array of

    [voter_ref, option_ref, timestamp, previous_hash, device_fingerprint]

in exactly that order. JSON string quoting makes the encoding unambiguous: no
field value can be crafted to shift content into a neighbouring field.

The first block links to ``GENESIS_MARKER`` instead of a real digest. The
marker is a fixed 64-hex value so it is never confused with a missing (null)
previous hash.

Keep this module in sync with static/verify-vote-chain.py.
"""

from __future__ import annotations

import datetime
import hashlib
import json
import re

_HEX_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")

GENESIS_MARKER: str = hashlib.sha256(b"bharote-ledger:genesis").hexdigest()


def is_hex_digest(value: object) -> bool:
    return isinstance(value, str) and bool(_HEX_DIGEST_RE.fullmatch(value))


def canonical_timestamp(value: datetime.datetime) -> str:
    """ISO-8601 in UTC with microseconds, the only timestamp form that is hashed."""
    if value.tzinfo is None:
        raise ValueError("vote timestamps must be timezone-aware")
    return value.astimezone(datetime.UTC).isoformat(timespec="microseconds")


def compute_vote_hash(
    *,
    voter_ref: int | str,
    option_ref: int | str,
    timestamp: datetime.datetime,
    previous_hash: str | None,
    device_fingerprint: str,
) -> str:
    if previous_hash is None:
        # Genesis must be explicit; a missing link is an error, not block #1.
        raise ValueError("previous_hash is required; use GENESIS_MARKER for the first block")
    if not is_hex_digest(previous_hash):
        raise ValueError("previous_hash must be a lowercase 64-character hex digest")

    payload = [
        str(voter_ref),
        str(option_ref),
        canonical_timestamp(timestamp),
        previous_hash,
        str(device_fingerprint or ""),
    ]
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(data).hexdigest()
