from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for every request/response body: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CurrentUser(WireModel):
    id: int
    role: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role.upper() == "ADMIN"

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or f"user #{self.id}"


def wire_params(query: BaseModel) -> dict[str, str]:
    """Flatten a query model into URL parameters the dashboard routes understand.

    Booleans become ``true``/``false`` and lists become comma-separated values.
    """
    raw = query.model_dump(by_alias=True, exclude_none=True, mode="json")
    params: dict[str, str] = {}
    for key, value in raw.items():
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        elif isinstance(value, list):
            if value:
                params[key] = ",".join(str(item) for item in value)
        else:
            params[key] = str(value)
    return params
