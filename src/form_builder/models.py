from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """Persisted row; serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_dict(self, **kwargs: Any) -> dict[str, Any]:
        return self.model_dump(by_alias=True, **kwargs)


class SpecificationRecord(Record):
    id: int
    name: str
    price: float
    section_id: int
    created_at: str
    updated_at: str


class SectionRecord(Record):
    id: int
    name: str
    created_at: str
    updated_at: str
    specifications: list[SpecificationRecord] = []

    @computed_field(alias="totalPrice")
    @property
    def total_price(self) -> float:
        return sum(specification.price for specification in self.specifications)


class UserRecord(Record):
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    created_at: str
    updated_at: str

    @computed_field(alias="fullName")
    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
