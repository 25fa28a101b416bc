"""Storage of products in a relational database."""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from shopmesh.product.models import Product


class ProductNotFound(LookupError):
    """Raised when no product has the requested id."""


class ProductRepository:
    """Reads and writes products through SQLAlchemy."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _session(self) -> Session:
        return Session(self._engine, expire_on_commit=False)

    def create_product(self, product: Product) -> Product:
        with self._session() as session:
            session.add(product)
            session.commit()
        return product

    def get_product_by_id(self, product_id: uuid.UUID) -> Product:
        with self._session() as session:
            product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound("record not found")
        return product

    def update_product(self, product: Product) -> Product:
        """Write every field of the product, inserting it if it is new."""
        with self._session() as session:
            merged = session.merge(product)
            session.commit()
        return merged

    def delete_product(self, product_id: uuid.UUID) -> None:
        with self._session() as session:
            session.execute(delete(Product).where(Product.id == product_id))
            session.commit()

    def get_products_by_name(self, name: str) -> list[Product]:
        """Products whose name contains name, ignoring case."""
        with self._session() as session:
            return list(session.scalars(select(Product).where(Product.name.ilike(f"%{name}%"))))

    def get_all_products(self) -> list[Product]:
        with self._session() as session:
            return list(session.scalars(select(Product)))