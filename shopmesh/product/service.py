"""Product operations with a read-through cache."""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any, Callable, Optional, TypeVar

import redis
from sqlalchemy.exc import SQLAlchemyError

from shopmesh.product.models import Product, UpdateRequest
from shopmesh.product.repository import ProductNotFound

log = logging.getLogger(__name__)

CACHE_TTL = timedelta(minutes=60)
ALL_PRODUCTS_KEY = "products:all"

_CACHE_ERRORS = (redis.RedisError, OSError, ValueError, TypeError)
_STORE_ERRORS = (ProductNotFound, SQLAlchemyError)

T = TypeVar("T")


class ProductServiceError(Exception):
    """Raised when a product operation fails."""


def _product_key(product_id: uuid.UUID) -> str:
    return f"product:{product_id}"


def _name_key(name: str) -> str:
    return f"product_by_name:{name}"


def _products(raw: Any) -> list[Product]:
    if not isinstance(raw, list):
        raise ValueError("cached product list is not a list")
    return [Product.from_dict(item) for item in raw]


class ProductService:
    """Business rules for products; the cache is best effort."""

    def __init__(self, repository: Any, cache: Any) -> None:
        self._repository = repository
        self._cache = cache

    def _cached(self, key: str, decode: Callable[[Any], T]) -> Optional[T]:
        try:
            if not self._cache.exists(key):
                return None
            raw = self._cache.get(key)
            if raw is None:
                return None
            return decode(raw)
        except _CACHE_ERRORS as exc:
            log.debug("Ignoring unusable cache entry %s: %s", key, exc)
            return None

    def _store(self, key: str, value: Any) -> bool:
        try:
            self._cache.set(key, value, CACHE_TTL)
        except _CACHE_ERRORS as exc:
            log.warning("Failed to cache %s: %s", key, exc)
            return False
        return True

    def _forget(self, key: str) -> None:
        try:
            self._cache.delete(key)
        except _CACHE_ERRORS as exc:
            log.debug("Failed to drop cache key %s: %s", key, exc)

    def _forget_pattern(self, pattern: str) -> None:
        try:
            self._cache.delete_pattern(pattern)
        except _CACHE_ERRORS as exc:
            log.debug("Failed to drop cache keys %s: %s", pattern, exc)

    def _load(self, product_id: uuid.UUID) -> Product:
        try:
            return self._repository.get_product_by_id(product_id)
        except _STORE_ERRORS as exc:
            raise ProductServiceError(f"product not found: {exc}") from exc

    def create_product(self, product: Product) -> Product:
        try:
            self._repository.create_product(product)
        except SQLAlchemyError as exc:
            raise ProductServiceError(f"failed to create product: {exc}") from exc
        key = _product_key(product.id)
        if self._store(key, product):
            log.info("Successfully cached product with key: %s", key)
        self._forget(ALL_PRODUCTS_KEY)
        return product

    def get_product_by_id(self, product_id: uuid.UUID) -> Product:
        key = _product_key(product_id)
        cached = self._cached(key, Product.from_dict)
        if cached is not None:
            return cached
        product = self._load(product_id)
        self._store(key, product)
        return product

    def update_product(self, product_id: uuid.UUID, update: UpdateRequest) -> Product:
        """Apply the non-empty fields of update and refresh the cache."""
        product = self._load(product_id)
        old_name = product.name
        if update.name:
            product.name = update.name
        if update.description:
            product.description = update.description
        if update.price != 0:
            product.price = update.price
        if update.image:
            product.image = update.image
        try:
            self._repository.update_product(product)
        except SQLAlchemyError as exc:
            raise ProductServiceError(f"failed to update product: {exc}") from exc
        self._store(_product_key(product_id), product)
        self._forget(_name_key(old_name))
        self._forget_pattern(ALL_PRODUCTS_KEY)
        return product

    def delete_product(self, product_id: uuid.UUID) -> None:
        product = self._load(product_id)
        try:
            self._repository.delete_product(product_id)
        except SQLAlchemyError as exc:
            raise ProductServiceError(f"failed to delete product: {exc}") from exc
        self._forget(_product_key(product_id))
        self._forget(_name_key(product.name))
        self._forget_pattern(ALL_PRODUCTS_KEY)

    def get_products_by_name(self, name: str) -> list[Product]:
        key = _name_key(name)
        cached = self._cached(key, _products)
        if cached is not None:
            return cached
        try:
            products = self._repository.get_products_by_name(name)
        except SQLAlchemyError as exc:
            raise ProductServiceError(f"product not found: {exc}") from exc
        self._store(key, products)
        return products

    def get_all_products(self) -> list[Product]:
        cached = self._cached(ALL_PRODUCTS_KEY, _products)
        if cached is not None:
            return cached
        try:
            products = self._repository.get_all_products()
        except SQLAlchemyError as exc:
            raise ProductServiceError(f"failed to retrieve products: {exc}") from exc
        self._store(ALL_PRODUCTS_KEY, products)
        return products