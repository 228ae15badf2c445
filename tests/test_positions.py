import pytest

from modules.setup_sheet.errors import NotFoundError, ValidationError
from modules.setup_sheet.positions import (
    Department,
    PositionCatalog,
    default_catalog,
    department_for_category,
    parse_department,
)


def test_kitchen_is_back_of_house():
    assert department_for_category("Kitchen") == Department.BOH
    assert department_for_category("Drive Thru") == Department.FOH
    assert department_for_category("Front Counter") == Department.FOH
    assert department_for_category(None) == Department.FOH


def test_parse_department():
    assert parse_department("boh") == Department.BOH
    assert parse_department("") is None
    with pytest.raises(ValidationError):
        parse_department("bar")


def test_default_catalog_lookup_is_case_insensitive():
    catalog = default_catalog("store-1")
    position = catalog.get("drive thru 1")
    assert position.name == "Drive Thru 1"
    assert position.department == Department.FOH
    assert {p.name for p in catalog.by_department(Department.BOH)} >= {"Kitchen Lead", "Breading"}


def test_unknown_position():
    with pytest.raises(NotFoundError):
        default_catalog("store-1").get("Dishwasher")


def test_from_rows_fills_department_from_category():
    catalog = PositionCatalog.from_rows(
        "store-1",
        [
            {"name": "Grill", "category": "Kitchen"},
            {"name": "Host", "category": "Front Counter", "department": "FOH"},
        ],
    )
    assert len(catalog) == 2
    assert catalog.get("Grill").department == Department.BOH


def test_duplicate_catalog_names_rejected():
    with pytest.raises(ValidationError):
        PositionCatalog.from_rows("store-1", [{"name": "Grill"}, {"name": "grill"}])
