"""
Read-only catalog and staff providers backed by JSON files.

Menu and staff records are managed elsewhere; the terminal only needs to look
items up by id and list the servers that can be assigned to an order. Both
files are read once at startup.

Catalog file shape:
    {"items": [{"id": "l1", "name": "Lechon", "price": 700, "isWeighted": true}, ...]}

Staff file shape:
    {"staff": [{"id": "s1", "name": "Ana", "role": "Server", "status": "ACTIVE"}, ...]}

A bare JSON list is accepted for either file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from core.exceptions import CatalogItemNotFoundError, InvalidInputError, StorageError
from models.catalog import CatalogItem
from models.staff import StaffMember
from logging_config import get_logger


logger = get_logger(__name__)


def _read_records(path: Union[str, Path], collection: str) -> List[Dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        logger.warning(f"{collection} file not found: {path}")
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(str(path), f"cannot read {collection}: {e}")

    if isinstance(data, dict):
        data = data.get(collection, [])
    if not isinstance(data, list):
        raise StorageError(str(path), f"expected a list of {collection}")
    return data


class CatalogProvider:
    """Menu lookup interface."""

    def get_item(self, item_id: str) -> CatalogItem:
        raise NotImplementedError

    def list_items(self) -> List[CatalogItem]:
        raise NotImplementedError


class JsonCatalogProvider(CatalogProvider):
    """Catalog held in memory, loaded from a JSON file or a list of records."""

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self._items: Dict[str, CatalogItem] = {}
        for item in items:
            self._items[item.item_id] = item

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "JsonCatalogProvider":
        items = []
        for record in _read_records(path, "items"):
            try:
                items.append(CatalogItem.from_dict(record))
            except (KeyError, ValueError) as e:
                logger.error(f"Skipping invalid menu record {record.get('id', '?')}: {e}")

        logger.info(f"Loaded {len(items)} menu items from {path}")
        return cls(items)

    def get_item(self, item_id: str) -> CatalogItem:
        item = self._items.get(str(item_id))
        if item is None:
            raise CatalogItemNotFoundError(str(item_id))
        return item

    def list_items(self, category: Optional[str] = None) -> List[CatalogItem]:
        items = list(self._items.values())
        if category:
            items = [item for item in items if item.category == category]
        return items

    def categories(self) -> List[str]:
        seen: List[str] = []
        for item in self._items.values():
            if item.category and item.category not in seen:
                seen.append(item.category)
        return seen


class JsonStaffDirectory:
    """Staff lookup for server selection."""

    def __init__(self, members: Iterable[StaffMember] = ()):
        self._members: Dict[str, StaffMember] = {m.staff_id: m for m in members}

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "JsonStaffDirectory":
        members = []
        for record in _read_records(path, "staff"):
            try:
                members.append(StaffMember.from_dict(record))
            except KeyError as e:
                logger.error(f"Skipping staff record without {e}")

        logger.info(f"Loaded {len(members)} staff records from {path}")
        return cls(members)

    def get_staff(self, staff_id: str) -> StaffMember:
        member = self._members.get(str(staff_id))
        if member is None:
            raise InvalidInputError("Staff member not found", field="staff_id", value=staff_id)
        return member

    def list_servers(self) -> List[StaffMember]:
        """Active staff with the Server role."""
        return [m for m in self._members.values() if m.can_serve]
