from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pos_backend.models  # noqa: F401
from pos_backend.core.database import Base
from pos_backend.models.category import Category
from pos_backend.models.modifier import Modifier
from pos_backend.services import modifier_catalog
from pos_backend.services.modifier_errors import InvalidModifierPolicy
from pos_backend.services.modifier_policy import EntityRef
from pos_backend.services.modifier_seed import (
    OptionSpec,
    all_category_refs,
    assign_to_entities,
    parse_option_spec,
    upsert_modifier,
)
from scripts import seed_modifier
from tests.fixtures_data import DRINKS_CATEGORY, NOODLES_CATEGORY


def _build_session_factory():
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
    db.commit()
    db.close()
    return TestingSessionLocal


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Mushroom", OptionSpec("Mushroom", Decimal("0"))),
        ("Extra Egg:1.50", OptionSpec("Extra Egg", Decimal("1.50"))),
        (" Prawns : 2.5 ", OptionSpec("Prawns", Decimal("2.5"))),
        ("Sauce:house", OptionSpec("Sauce:house", Decimal("0"))),
    ],
)
def test_parse_option_spec(raw, expected):
    assert parse_option_spec(raw) == expected


def test_parse_option_spec_requires_name():
    with pytest.raises(ValueError):
        parse_option_spec("   ")


@pytest.mark.parametrize("raw", ["Sauce:NaN", "Sauce:Infinity", "Sauce:-inf", "Sauce:sNaN"])
def test_parse_option_spec_rejects_non_finite_price(raw):
    with pytest.raises(ValueError, match="finite"):
        parse_option_spec(raw)


def test_upsert_modifier_creates_then_extends_without_duplicates():
    db = _build_session_factory()()

    modifier, created, added = upsert_modifier(
        db,
        name="Western Sauce",
        max_choices=1,
        options=[OptionSpec("Mushroom"), OptionSpec("Black Pepper")],
    )
    assert created is True
    assert [option.name for option in added] == ["Mushroom", "Black Pepper"]

    again, created_again, added_again = upsert_modifier(
        db,
        name="Western Sauce",
        options=[OptionSpec("mushroom"), OptionSpec("Garlic", Decimal("0.30"))],
    )
    assert again.id == modifier.id
    assert created_again is False
    assert [(option.name, option.sort_order) for option in added_again] == [("Garlic", 3)]
    assert [option.name for option in modifier_catalog.list_options(db, modifier.id)] == [
        "Mushroom",
        "Black Pepper",
        "Garlic",
    ]


def test_assign_to_entities_skips_existing_assignments():
    db = _build_session_factory()()
    modifier, _, _ = upsert_modifier(db, name="Western Sauce")
    modifier_catalog.create_assignment(db, modifier.id, EntityRef.category(5))

    assigned, skipped = assign_to_entities(db, modifier.id, all_category_refs(db) + [EntityRef.product(42)])

    assert assigned == [EntityRef.category(6), EntityRef.product(42)]
    assert skipped == [EntityRef.category(5)]


def test_seed_script_assigns_to_every_category(monkeypatch, capsys):
    session_factory = _build_session_factory()
    monkeypatch.setattr(seed_modifier, "SessionLocal", session_factory)

    exit_code = seed_modifier.main(
        [
            "--name",
            "Western Sauce",
            "--max",
            "1",
            "--option",
            "Mushroom",
            "--option",
            "Black Pepper",
            "--assign-category",
            "5",
            "--all-categories",
            "--assign-product",
            "42",
        ]
    )

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "Modifier created" in output
    assert "Assigned to category 5" in output
    assert "Assigned to category 6" in output
    assert "Assigned to product 42" in output

    db = session_factory()
    assert len(modifier_catalog.list_assignments(db, 1)) == 3

    assert seed_modifier.main(["--name", "Western Sauce", "--assign-category", "5"]) == 0
    assert "Already assigned to category 5, skipped" in capsys.readouterr().out


def test_seed_script_reports_invalid_policy(monkeypatch, capsys):
    monkeypatch.setattr(seed_modifier, "SessionLocal", _build_session_factory())

    exit_code = seed_modifier.main(["--name", "Broken", "--selection-type", "single", "--min", "2"])

    assert exit_code == 1
    assert "Failed:" in capsys.readouterr().out


def test_upsert_modifier_commits_nothing_when_an_option_is_rejected():
    session_factory = _build_session_factory()
    db = session_factory()

    with pytest.raises(InvalidModifierPolicy):
        upsert_modifier(
            db,
            name="Western Sauce",
            options=[OptionSpec("Mushroom"), OptionSpec("Sauce", Decimal("NaN"))],
        )
    db.close()

    assert session_factory().query(Modifier).count() == 0


def test_seed_script_reports_non_finite_price(monkeypatch, capsys):
    session_factory = _build_session_factory()
    monkeypatch.setattr(seed_modifier, "SessionLocal", session_factory)

    exit_code = seed_modifier.main(["--name", "Western Sauce", "--option", "Sauce:NaN"])

    assert exit_code == 1
    assert "finite" in capsys.readouterr().out
    assert session_factory().query(Modifier).count() == 0
