"""
Staff reference data.

Only what checkout needs: who served the table. PINs and wages stay with the
staff management collaborator and are never loaded here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any


@dataclass(frozen=True)
class StaffMember:
    """A member of staff who can be selected as the order's server."""

    staff_id: str
    name: str
    role: str = "Server"
    """Server, Cashier, Manager or Kitchen."""

    active: bool = True

    @property
    def can_serve(self) -> bool:
        return self.active and self.role.lower() == "server"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.staff_id,
            "name": self.name,
            "role": self.role,
            "status": "ACTIVE" if self.active else "INACTIVE",
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StaffMember":
        return cls(
            staff_id=str(data["id"]),
            name=data.get("name", ""),
            role=data.get("role", "Server"),
            active=str(data.get("status", "ACTIVE")).upper() == "ACTIVE",
        )
