#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from pos_backend.core.database import SessionLocal  # noqa: E402
from pos_backend.services.modifier_errors import UnknownProduct  # noqa: E402
from pos_backend.services.modifier_selection import resolve_applicable_modifiers  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print the modifiers that apply to a product.")
    parser.add_argument("product_id", type=int)
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        modifiers = resolve_applicable_modifiers(db, args.product_id)
    except UnknownProduct as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    if not modifiers:
        print(f"No modifiers apply to product {args.product_id}")
        return 0

    for modifier in modifiers:
        policy = modifier.policy
        maximum = policy.effective_max if policy.effective_max is not None else "unbounded"
        sources = ",".join(sorted(source.value for source in modifier.sources))
        print(
            f"[{modifier.id}] {modifier.name} ({modifier.selection_type}, "
            f"min={policy.effective_min}, max={maximum}, via={sources})"
        )
        for option in modifier.options:
            print(f"    - [{option.id}] {option.name} {option.price_delta:+}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
