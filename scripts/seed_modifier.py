#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from pos_backend.core.database import SessionLocal  # noqa: E402
from pos_backend.services.modifier_errors import ModifierError  # noqa: E402
from pos_backend.services.modifier_policy import EntityRef  # noqa: E402
from pos_backend.services.modifier_seed import (  # noqa: E402
    all_category_refs,
    assign_to_entities,
    parse_option_spec,
    upsert_modifier,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or extend a modifier and assign it.")
    parser.add_argument("--name", required=True, help="Modifier name, e.g. 'Western Sauce'")
    parser.add_argument("--description", default=None)
    parser.add_argument("--selection-type", choices=["single", "multiple"], default="single")
    parser.add_argument("--min", dest="min_choices", type=int, default=0)
    parser.add_argument("--max", dest="max_choices", type=int, default=None)
    parser.add_argument("--sort-order", type=int, default=0)
    parser.add_argument(
        "--option",
        action="append",
        default=[],
        help="Option as NAME or NAME:PRICE_DELTA (repeatable)",
    )
    parser.add_argument("--assign-category", type=int, action="append", default=[])
    parser.add_argument("--assign-product", type=int, action="append", default=[])
    parser.add_argument("--all-categories", action="store_true", help="Assign to every category")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        options = [parse_option_spec(raw) for raw in args.option]
    except ValueError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        modifier, created, added = upsert_modifier(
            db,
            name=args.name,
            description=args.description,
            selection_type=args.selection_type,
            min_choices=args.min_choices,
            max_choices=args.max_choices,
            sort_order=args.sort_order,
            options=options,
        )
        print(f"Modifier {'created' if created else 'found'}: id={modifier.id} name={modifier.name}")
        for option in added:
            print(f"  + option {option.name} ({option.price_delta})")

        entities = [EntityRef.category(category_id) for category_id in args.assign_category]
        if args.all_categories:
            for entity in all_category_refs(db):
                if entity not in entities:
                    entities.append(entity)
        entities.extend(EntityRef.product(product_id) for product_id in args.assign_product)

        assigned, skipped = assign_to_entities(db, modifier.id, entities)
    except ModifierError as exc:
        print(f"Failed: {exc}")
        return 1
    finally:
        db.close()

    for entity in assigned:
        print(f"Assigned to {entity.entity_type.value} {entity.entity_id}")
    for entity in skipped:
        print(f"Already assigned to {entity.entity_type.value} {entity.entity_id}, skipped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
