"""HTTP clients for the user and product services."""

from __future__ import annotations

import uuid
from typing import Any, Optional

import requests

from shopmesh.config import CallServiceConfig
from shopmesh.order.models import NIL_UUID, PartnerInfo, ProductInfo

USER_SERVICE_TIMEOUT = 5.0
PARTNER_LIST_PATH = "/api/buyer/get-list-partner"
PRODUCT_PATH = "/api/v1/product-id/"


class ServiceCallError(RuntimeError):
    """Raised when another service cannot be reached or answers badly."""


def _json(response: requests.Response, what: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ServiceCallError(f"error parsing {what} response: {exc}") from exc


class ServiceClient:
    """Calls the user service for partners and the product service for products."""

    def __init__(
        self,
        user_service_url: str,
        product_service_url: str,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.user_service_url = user_service_url
        self.product_service_url = product_service_url
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: CallServiceConfig) -> "ServiceClient":
        return cls(config.user_service_url, config.product_service_url)

    def get_list_partner(self, auth_header: str) -> list[PartnerInfo]:
        """List partners, forwarding the caller's Authorization header."""
        url = self.user_service_url + PARTNER_LIST_PATH
        try:
            response = self._session.get(
                url, headers={"Authorization": auth_header}, timeout=USER_SERVICE_TIMEOUT
            )
        except requests.RequestException as exc:
            raise ServiceCallError(str(exc)) from exc
        if response.status_code != 200:
            raise ServiceCallError(f"user-service error: {response.text}")
        payload = _json(response, "partner list")
        if not isinstance(payload, dict):
            raise ServiceCallError("error parsing partner list response: not a JSON object")
        data = payload.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            raise ServiceCallError("error parsing partner list response: data is not a list")
        try:
            return [PartnerInfo.from_dict(entry) for entry in data]
        except ValueError as exc:
            raise ServiceCallError(f"error parsing partner list response: {exc}") from exc

    def get_product_by_id(self, product_id: uuid.UUID) -> ProductInfo:
        """Fetch one product; a reply without a product id counts as not found."""
        url = f"{self.product_service_url}{PRODUCT_PATH}{product_id}"
        try:
            response = self._session.get(url)
        except requests.RequestException as exc:
            raise ServiceCallError(f"error sending request to product service: {exc}") from exc
        if response.status_code != 200:
            raise ServiceCallError(
                f"product service returned error status: {response.status_code} - {response.text}"
            )
        payload = _json(response, "product")
        if not isinstance(payload, dict):
            raise ServiceCallError("error parsing product response: not a JSON object")
        data = payload.get("data")
        if data is None:
            data = {}
        try:
            product = ProductInfo.from_dict(data)
        except ValueError as exc:
            raise ServiceCallError(f"error parsing product response: {exc}") from exc
        if product.id == NIL_UUID:
            raise ServiceCallError(
                f"product with ID {product_id} not found in product service response"
            )
        return product