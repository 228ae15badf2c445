"""
modules/setup_sheet/positions.py

Store-scoped catalog of labor positions ("Drive Thru 1", "Kitchen Lead", ...).

Positions are grouped by category the way the setup sheet builder groups
them (Front Counter, Drive Thru, Kitchen); the category decides the
department an employee must belong to.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from modules.setup_sheet.errors import NotFoundError, ValidationError


class Department(str, Enum):
    FOH = "FOH"  # Front of house
    BOH = "BOH"  # Back of house


CATEGORY_FRONT_COUNTER = "Front Counter"
CATEGORY_DRIVE_THRU = "Drive Thru"
CATEGORY_KITCHEN = "Kitchen"

CATEGORIES = [CATEGORY_FRONT_COUNTER, CATEGORY_DRIVE_THRU, CATEGORY_KITCHEN]


def department_for_category(category: Optional[str]) -> Department:
    """Kitchen positions are BOH, everything else is FOH."""
    if category and category.strip().lower() == CATEGORY_KITCHEN.lower():
        return Department.BOH
    return Department.FOH


def parse_department(value: Optional[str]) -> Optional[Department]:
    if value is None or value == "":
        return None
    try:
        return Department(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown department: '{value}'", {"department": value})


@dataclass(frozen=True)
class CatalogPosition:
    name: str
    category: str
    department: Department

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "category": self.category,
            "department": self.department.value,
        }


DEFAULT_POSITIONS = [
    ("Front Counter 1", CATEGORY_FRONT_COUNTER),
    ("Front Counter 2", CATEGORY_FRONT_COUNTER),
    ("Runner", CATEGORY_FRONT_COUNTER),
    ("Drive Thru 1", CATEGORY_DRIVE_THRU),
    ("Drive Thru 2", CATEGORY_DRIVE_THRU),
    ("Kitchen Lead", CATEGORY_KITCHEN),
    ("Breading", CATEGORY_KITCHEN),
    ("Machines", CATEGORY_KITCHEN),
    ("Primary", CATEGORY_KITCHEN),
    ("Secondary", CATEGORY_KITCHEN),
]


class PositionCatalog:
    """Named labor roles available to one store."""

    def __init__(self, store_id: str, positions: List[CatalogPosition]):
        self.store_id = store_id
        self._positions: Dict[str, CatalogPosition] = {}
        for position in positions:
            key = position.name.strip().casefold()
            if key in self._positions:
                raise ValidationError(
                    f"Duplicate position '{position.name}' in catalog",
                    {"store_id": store_id, "position": position.name},
                )
            self._positions[key] = position

    @classmethod
    def from_rows(cls, store_id: str, rows: List[Dict]) -> "PositionCatalog":
        positions = []
        for row in rows:
            category = row.get("category") or CATEGORY_FRONT_COUNTER
            department = parse_department(row.get("department")) or department_for_category(category)
            positions.append(CatalogPosition(row["name"], category, department))
        return cls(store_id, positions)

    def get(self, name: str) -> CatalogPosition:
        position = self._positions.get((name or "").strip().casefold())
        if position is None:
            raise NotFoundError(
                f"Position '{name}' is not in the catalog for this store",
                {"store_id": self.store_id, "position": name},
            )
        return position

    def by_department(self, department: Department) -> List[CatalogPosition]:
        return [p for p in self._positions.values() if p.department == department]

    def all(self) -> List[CatalogPosition]:
        return list(self._positions.values())

    def __len__(self) -> int:
        return len(self._positions)


def default_catalog(store_id: str) -> PositionCatalog:
    return PositionCatalog(
        store_id,
        [CatalogPosition(name, category, department_for_category(category)) for name, category in DEFAULT_POSITIONS],
    )
