#!/usr/bin/env python3
"""
Verify the public vote chain (local check)

This script checks that the downloaded chain.json export forms an unbroken,
contiguously numbered chain of blocks starting at the genesis marker, and that
the last block matches the published chain head. It also checks whether the
vote hash from your confirmation email appears in the export.

This script runs locally and does not contact the ledger server.

The public export carries no voter, party or device data, so block digests
cannot be recomputed here. Digest checks are done server-side by
`manage.py verify_ledger`.

Genesis marker: same as ledger/hashing.py GENESIS_MARKER
"""

from __future__ import annotations

import hashlib
import json


def compute_genesis_hash() -> str:
    """Genesis marker (must match ledger.hashing.GENESIS_MARKER)."""
    return hashlib.sha256(b"bharote-ledger:genesis").hexdigest()


def check_chain(*, blocks: list[dict[str, object]], genesis_hash: str) -> list[dict[str, object]]:
    """Return blocks in chain order.

    Raises ValueError on the first gap, fork or broken link.
    """

    by_number: dict[int, dict[str, object]] = {}
    for row in blocks:
        try:
            number = int(row.get("block_number"))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValueError("block row missing block_number")
        if number in by_number:
            raise ValueError(f"fork detected: block #{number} appears more than once")
        by_number[number] = row

    ordered: list[dict[str, object]] = []
    previous = genesis_hash
    for expected in range(1, len(blocks) + 1):
        row = by_number.get(expected)
        if row is None:
            raise ValueError(f"sequence gap: block #{expected} is missing")

        vote_hash = str(row.get("vote_hash") or "").strip()
        previous_hash = str(row.get("previous_hash") or "").strip()
        if not vote_hash:
            raise ValueError(f"block #{expected} missing vote_hash")
        if previous_hash != previous:
            raise ValueError(
                f"linkage broken at block #{expected}: previous_hash={previous_hash} expected={previous}"
            )

        ordered.append(row)
        previous = vote_hash

    return ordered


# ===== YOUR VOTE DETAILS =====
# Copy/paste these values from your confirmation email.

your_vote_hash = "your-vote-hash-from-email"
your_block_number = 0  # Optional

# Download chain.json from /ledger/public/chain.json and keep it next to this script.
chain_file = "chain.json"
if __name__ == "__main__":
    with open(chain_file, "r", encoding="utf-8") as f:
        export = json.load(f)

    if not isinstance(export, dict):
        raise SystemExit("chain.json must contain a JSON object")

    genesis = compute_genesis_hash()
    export_genesis = str(export.get("genesis_hash") or "").strip()
    if export_genesis and export_genesis != genesis:
        raise SystemExit(f"genesis hash mismatch: computed={genesis} export={export_genesis}")

    blocks_raw = export.get("blocks")
    if not isinstance(blocks_raw, list):
        raise SystemExit("chain.json blocks must be a list")
    blocks: list[dict[str, object]] = []
    for row in blocks_raw:
        if not isinstance(row, dict):
            raise SystemExit("chain.json blocks entries must be objects")
        blocks.append(row)

    try:
        ordered = check_chain(blocks=blocks, genesis_hash=genesis)
    except ValueError as exc:
        raise SystemExit(f"chain invalid: {exc}")

    computed_head = str(ordered[-1]["vote_hash"]) if ordered else genesis
    expected_head = str(export.get("chain_head") or "").strip()

    print("Vote Chain Verification")
    print("=" * 60)
    print(f"Blocks in export: {len(ordered)}")
    print(f"Computed chain head: {computed_head}")
    print(f"Exported chain head: {expected_head}")
    if expected_head and expected_head != computed_head:
        raise SystemExit("chain head mismatch")
    print("Chain is unbroken.")

    mine = [row for row in ordered if str(row.get("vote_hash")) == your_vote_hash.strip()]
    if mine:
        print(f"Your vote is in block #{mine[0]['block_number']}.")
        if your_block_number and int(mine[0]["block_number"]) != int(your_block_number):
            print("Warning: block number differs from the one in your email.")
    else:
        print("Your vote hash was not found in this export.")
