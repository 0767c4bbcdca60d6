from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pos_backend.models  # noqa: F401
from pos_backend.core.database import Base
from pos_backend.models.category import Category
from pos_backend.models.product import Product
from pos_backend.services import modifier_catalog
from pos_backend.services.modifier_errors import (
    MissingRequiredModifier,
    TooManyChoices,
    UnapplicableModifier,
    UnknownOption,
    UnknownProduct,
)
from pos_backend.services.modifier_policy import EntityRef, EntityType
from pos_backend.services.modifier_selection import (
    list_entity_modifiers,
    resolve_applicable_modifiers,
    validate_order_line,
)
from tests.fixtures_data import (
    DRINKS_CATEGORY,
    EXTRAS,
    EXTRAS_OPTIONS,
    ICED_TEA_PRODUCT,
    LOOSE_PRODUCT,
    NOODLES_CATEGORY,
    PAD_THAI_PRODUCT,
    SPICE_LEVEL,
    SPICE_LEVEL_OPTIONS,
    WESTERN_SAUCE,
    WESTERN_SAUCE_OPTIONS,
)


def _build_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    db.add(Category(**NOODLES_CATEGORY))
    db.add(Category(**DRINKS_CATEGORY))
    for product in (PAD_THAI_PRODUCT, ICED_TEA_PRODUCT, LOOSE_PRODUCT):
        db.add(Product(**{**product, "price": Decimal(product["price"])}))
    db.commit()
    return db


def _add_modifier(db, spec, options):
    modifier = modifier_catalog.create_modifier(db, **spec)
    created = [modifier_catalog.create_option(db, modifier.id, **option) for option in options]
    return modifier.id, [option.id for option in created]


class _StaticCatalog:
    def __init__(self, categories):
        self.categories = categories

    def get_product_category(self, product_id):
        if product_id not in self.categories:
            raise UnknownProduct(product_id)
        return self.categories[product_id]


def test_western_sauce_on_category_and_product_resolves_once():
    db = _build_session()
    sauce_id, option_ids = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.product(42))

    applicable = resolve_applicable_modifiers(db, 42)

    assert [modifier.id for modifier in applicable] == [sauce_id]
    sauce = applicable[0]
    assert [option.id for option in sauce.options] == option_ids
    assert [option.name for option in sauce.options] == ["Mushroom", "Black Pepper"]
    assert sauce.sources == frozenset({EntityType.CATEGORY, EntityType.PRODUCT})
    assert sauce.policy.effective_max == 1


def test_empty_selection_for_optional_sauce_is_valid():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))

    result = validate_order_line(db, 42, {})

    assert result.price_delta == Decimal("0")
    assert result.selections == ()


def test_choosing_both_sauces_raises_too_many_choices():
    db = _build_session()
    sauce_id, option_ids = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))

    with pytest.raises(TooManyChoices) as exc:
        validate_order_line(db, 42, {sauce_id: option_ids})

    assert exc.value.details["modifier_id"] == sauce_id


def test_category_modifier_reaches_every_product_in_category_only():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))

    assert [modifier.id for modifier in resolve_applicable_modifiers(db, 42)] == [sauce_id]
    assert resolve_applicable_modifiers(db, 43) == []
    assert resolve_applicable_modifiers(db, 44) == []


def test_product_assignment_applies_to_uncategorised_product():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.product(44))

    applicable = resolve_applicable_modifiers(db, 44)

    assert [modifier.id for modifier in applicable] == [sauce_id]
    assert applicable[0].sources == frozenset({EntityType.PRODUCT})


def test_resolution_orders_by_sort_order_and_skips_inactive():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    spice_id, _ = _add_modifier(db, SPICE_LEVEL, SPICE_LEVEL_OPTIONS)
    extras_id, extra_ids = _add_modifier(db, EXTRAS, EXTRAS_OPTIONS)
    for modifier_id in (sauce_id, spice_id, extras_id):
        modifier_catalog.create_assignment(db, modifier_id, EntityRef.category(5))
    modifier_catalog.deactivate_option(db, extra_ids[0])

    applicable = resolve_applicable_modifiers(db, 42)
    assert [modifier.id for modifier in applicable] == [spice_id, sauce_id, extras_id]
    assert [option.id for option in applicable[2].options] == extra_ids[1:]

    modifier_catalog.deactivate_modifier(db, sauce_id)
    assert [modifier.id for modifier in resolve_applicable_modifiers(db, 42)] == [spice_id, extras_id]


def test_resolution_is_idempotent():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.product(42))

    assert resolve_applicable_modifiers(db, 42) == resolve_applicable_modifiers(db, 42)


def test_resolution_for_unknown_product_raises():
    db = _build_session()

    with pytest.raises(UnknownProduct):
        resolve_applicable_modifiers(db, 999)


def test_resolution_accepts_external_product_catalog():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(77))
    catalog = _StaticCatalog({500: 77})

    applicable = resolve_applicable_modifiers(db, 500, catalog=catalog)

    assert [modifier.id for modifier in applicable] == [sauce_id]
    with pytest.raises(UnknownProduct):
        resolve_applicable_modifiers(db, 501, catalog=catalog)


def test_required_modifier_missing_from_selections_raises():
    db = _build_session()
    spice_id, _ = _add_modifier(db, SPICE_LEVEL, SPICE_LEVEL_OPTIONS)
    modifier_catalog.create_assignment(db, spice_id, EntityRef.product(42))

    with pytest.raises(MissingRequiredModifier) as exc:
        validate_order_line(db, 42, {})

    assert exc.value.details == {"modifier_id": spice_id, "product_id": 42}


def test_selection_for_modifier_not_applicable_to_product_raises():
    db = _build_session()
    sauce_id, option_ids = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(6))

    with pytest.raises(UnapplicableModifier):
        validate_order_line(db, 42, {sauce_id: option_ids[:1]})


def test_option_from_another_modifier_is_unknown():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    spice_id, spice_options = _add_modifier(db, SPICE_LEVEL, SPICE_LEVEL_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))
    modifier_catalog.create_assignment(db, spice_id, EntityRef.category(5))

    with pytest.raises(UnknownOption) as exc:
        validate_order_line(db, 42, {spice_id: spice_options[:1], sauce_id: spice_options[1:]})

    assert exc.value.details["modifier_id"] == sauce_id


def test_valid_order_line_totals_price_delta():
    db = _build_session()
    sauce_id, sauce_options = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    spice_id, spice_options = _add_modifier(db, SPICE_LEVEL, SPICE_LEVEL_OPTIONS)
    extras_id, extra_ids = _add_modifier(db, EXTRAS, EXTRAS_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))
    modifier_catalog.create_assignment(db, spice_id, EntityRef.product(42))
    modifier_catalog.create_assignment(db, extras_id, EntityRef.product(42))

    result = validate_order_line(
        db,
        42,
        {
            sauce_id: [sauce_options[1]],
            spice_id: [spice_options[0]],
            extras_id: [extra_ids[1], extra_ids[0]],
        },
    )

    assert result.product_id == 42
    assert result.price_delta == Decimal("3.50")
    assert [selection.modifier_id for selection in result.selections] == [spice_id, sauce_id, extras_id]
    assert result.selections[2].option_ids == (extra_ids[0], extra_ids[1])


def test_list_entity_modifiers_returns_direct_assignments_only():
    db = _build_session()
    sauce_id, _ = _add_modifier(db, WESTERN_SAUCE, WESTERN_SAUCE_OPTIONS)
    spice_id, _ = _add_modifier(db, SPICE_LEVEL, SPICE_LEVEL_OPTIONS)
    modifier_catalog.create_assignment(db, sauce_id, EntityRef.category(5))
    modifier_catalog.create_assignment(db, spice_id, EntityRef.product(42))

    assert [modifier.id for modifier in list_entity_modifiers(db, EntityRef.category(5))] == [sauce_id]
    assert [modifier.id for modifier in list_entity_modifiers(db, EntityRef.product(42))] == [spice_id]


def test_order_line_total_stays_exact_after_reading_prices_back():
    db = _build_session()
    toppings_id, topping_ids = _add_modifier(
        db,
        {"name": "Toppings", "selection_type": "multiple", "sort_order": 0},
        [
            {"name": "Lime", "price_delta": "0.10", "sort_order": 1},
            {"name": "Peanuts", "price_delta": "0.20", "sort_order": 2},
        ],
    )
    modifier_catalog.create_assignment(db, toppings_id, EntityRef.product(42))
    db.commit()
    db.expire_all()

    result = validate_order_line(db, 42, {toppings_id: topping_ids})

    assert result.price_delta == Decimal("0.30")
    assert str(result.price_delta) == "0.30"
