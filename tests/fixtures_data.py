"""Reusable data for the modifier test scenarios."""

ADMIN_USER = {
    "id": 7,
    "username": "admin",
    "role": "admin",
    "active": True,
    "password_hash": "hashed",
}

NOODLES_CATEGORY = {"id": 5, "name": "Noodles & Rice", "sort_order": 1, "is_active": True}
DRINKS_CATEGORY = {"id": 6, "name": "Drinks", "sort_order": 2, "is_active": True}

PAD_THAI_PRODUCT = {"id": 42, "code": "PT-01", "name": "Pad Thai", "category_id": 5, "price": "8.50"}
ICED_TEA_PRODUCT = {"id": 43, "code": "DR-01", "name": "Iced Tea", "category_id": 6, "price": "2.00"}
LOOSE_PRODUCT = {"id": 44, "code": "MISC-01", "name": "Prawn Crackers", "category_id": None, "price": "1.50"}

WESTERN_SAUCE = {
    "name": "Western Sauce",
    "selection_type": "single",
    "min_choices": 0,
    "max_choices": 1,
    "sort_order": 1,
}
WESTERN_SAUCE_OPTIONS = [
    {"name": "Mushroom", "price_delta": "0", "sort_order": 1},
    {"name": "Black Pepper", "price_delta": "0", "sort_order": 2},
]

SPICE_LEVEL = {
    "name": "Spice Level",
    "selection_type": "single",
    "min_choices": 1,
    "max_choices": 1,
    "sort_order": 0,
}
SPICE_LEVEL_OPTIONS = [
    {"name": "Mild", "price_delta": "0", "sort_order": 1},
    {"name": "Hot", "price_delta": "0", "sort_order": 2},
]

EXTRAS = {
    "name": "Extras",
    "selection_type": "multiple",
    "min_choices": 0,
    "max_choices": 3,
    "sort_order": 2,
}
EXTRAS_OPTIONS = [
    {"name": "Egg", "price_delta": "1.00", "sort_order": 1},
    {"name": "Prawns", "price_delta": "2.50", "sort_order": 2},
    {"name": "Tofu", "price_delta": "0.75", "sort_order": 3},
    {"name": "Peanuts", "price_delta": "0.25", "sort_order": 4},
]
