"""Products and product update requests."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Float, String, Uuid, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, MappedAsDataclass, mapped_column


def _require_object(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _number(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


class _Base(MappedAsDataclass, DeclarativeBase):
    pass


class Product(_Base):
    """An item for sale."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default_factory=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True, default="")
    description: Mapped[str] = mapped_column(String, nullable=False, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    image: Mapped[str] = mapped_column(String, nullable=False, default="")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Product":
        """Build a product from decoded JSON; absent fields take empty values."""
        data = _require_object(data, "product")
        raw_id = data.get("id")
        if raw_id is None:
            product_id = uuid.uuid4()
        elif isinstance(raw_id, str):
            try:
                product_id = uuid.UUID(raw_id)
            except ValueError as exc:
                raise ValueError("id must be a UUID") from exc
        else:
            raise ValueError("id must be a UUID")
        return cls(
            id=product_id,
            name=_text(data, "name"),
            description=_text(data, "description"),
            price=_number(data, "price"),
            image=_text(data, "image"),
        )


@dataclass(frozen=True)
class UpdateRequest:
    """Fields to change on a product; empty strings and a zero price mean unchanged."""

    name: str = ""
    description: str = ""
    price: float = 0.0
    image: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "UpdateRequest":
        data = _require_object(data, "update")
        return cls(
            name=_text(data, "name"),
            description=_text(data, "description"),
            price=_number(data, "price"),
            image=_text(data, "image"),
        )


def init_db(url: str) -> Engine:
    """Open the database at url and create the products table if needed."""
    engine = create_engine(url)
    _Base.metadata.create_all(engine)
    return engine