"""
Read-only client for the order/document store.

The store is a hosted Postgres exposed through a PostgREST-style HTTP API.
Row-level security on the server decides what the API key may read; this
client never writes.

Tables:
    orders            - id, customer_name, customer_email, project_id,
                        project_title, price, status, created_at
    project_documents - id, project_id, name, url, document_category,
                        review_stage, size, description, is_active
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from models.document import ProjectDocument
from models.order import Order
from .exceptions import StorageError


class StoreClient:
    """
    Fetches orders and project documents.

    Each call is a fresh read; nothing is cached.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the store client.

        Args:
            base_url: Project URL (e.g. https://xyz.supabase.co)
            api_key: Anon or service key sent as apikey and bearer token
            timeout_seconds: Per-request timeout
            client: Pre-built httpx.Client (tests pass one with a MockTransport)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required")

        self._rest_url = base_url.rstrip("/") + "/rest/v1"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._logger = logger or logging.getLogger("doc_delivery.core.storage_client")

    def list_orders(self) -> List[Order]:
        """All readable orders, newest first."""
        rows = self._select("orders", {"select": "*", "order": "created_at.desc"})
        return [Order.from_dict(row) for row in rows]

    def get_order(self, order_id: str) -> Optional[Order]:
        """
        Fetch one order.

        Returns:
            Order, or None if no readable order has this id
        """
        rows = self._select("orders", {"select": "*", "id": f"eq.{order_id}"})
        if not rows:
            return None
        return Order.from_dict(rows[0])

    def list_documents(self, project_id: Optional[str] = None) -> List[ProjectDocument]:
        """
        Documents in catalog order, optionally for one project.

        Inactive documents are included; filtering is the resolver's job.
        """
        params = {"select": "*", "order": "created_at.asc"}
        if project_id is not None:
            params["project_id"] = f"eq.{project_id}"
        rows = self._select("project_documents", params)
        return [ProjectDocument.from_dict(row) for row in rows]

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """
        Run a GET against one table.

        Raises:
            StorageError: On network failure, error status or non-list body
        """
        url = f"{self._rest_url}/{table}"
        try:
            response = self._client.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as e:
            self._logger.error(f"Store request for '{table}' failed: {e}")
            raise StorageError(f"Could not reach the store: {e}", resource=table) from e

        if response.status_code >= 400:
            self._logger.error(
                f"Store rejected '{table}' query: {response.status_code} {response.text}"
            )
            raise StorageError(
                f"Store query failed with status {response.status_code}",
                resource=table,
                status_code=response.status_code,
            )

        try:
            rows = response.json()
        except ValueError as e:
            raise StorageError(f"Invalid JSON from store: {e}", resource=table) from e

        if not isinstance(rows, list):
            raise StorageError("Unexpected response shape from store", resource=table)

        self._logger.debug(f"Fetched {len(rows)} rows from '{table}'")
        return rows
