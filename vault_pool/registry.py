"""REST client for the account registry (the api_keys table)."""
import logging
from typing import Any, List, Optional

import httpx

from . import config
from .exceptions import RegistryError
from .models import Account, utcnow
from .rest import build_client, error_message

logger = logging.getLogger(__name__)


class RegistryClient:
    """Base client for the PostgREST API of the main project."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize registry client.

        Args:
            url: Main project URL (default from VAULT_REGISTRY_URL)
            key: Main project key (default from VAULT_REGISTRY_KEY)
            timeout: Request timeout in seconds
            transport: Custom httpx transport, used by tests
        """
        self.url = (url or config.REGISTRY_URL).rstrip("/")
        self.client = build_client(
            f"{self.url}/rest/v1",
            key if key is not None else config.REGISTRY_KEY,
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[dict] = None,
        json: Any = None,
        representation: bool = False,
    ) -> Any:
        headers = {"Prefer": "return=representation"} if representation else {}
        try:
            response = await self.client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Registry request {method} {table} failed: {e}")
            raise RegistryError(str(e) or type(e).__name__) from e
        if response.is_error:
            message = error_message(response)
            logger.error(f"Registry error {response.status_code} on {method} {table}: {message}")
            raise RegistryError(message, response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Registry returned non-JSON body on {method} {table}")
            raise RegistryError(f"Unexpected response from registry: {response.text[:200]}", response.status_code) from e

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()


class AccountRegistry(RegistryClient):
    """Persists storage accounts per user."""

    TABLE = "api_keys"

    async def list_accounts(self, user_id: str) -> List[Account]:
        """All accounts of a user, oldest first."""
        rows = await self._request(
            "GET",
            self.TABLE,
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.asc"},
        )
        return [Account.from_row(row) for row in rows or []]

    async def get_account(self, account_id: str) -> Optional[Account]:
        rows = await self._request("GET", self.TABLE, params={"select": "*", "id": f"eq.{account_id}"})
        if not rows:
            return None
        return Account.from_row(rows[0])

    async def insert_account(self, user_id: str, fields: dict) -> Account:
        """
        Insert a new account.

        If the account is flagged primary, the primary flag of every other
        account of the user is cleared first.
        """
        if fields.get("is_primary"):
            await self._clear_primary(user_id)
        rows = await self._request(
            "POST", self.TABLE, json={"user_id": user_id, **fields}, representation=True
        )
        account = Account.from_row(rows[0])
        logger.info(f"Registered account {account.name} ({account.id})")
        return account

    async def update_account(self, account_id: str, updates: dict) -> Optional[Account]:
        rows = await self._request(
            "PATCH", self.TABLE, params={"id": f"eq.{account_id}"}, json=updates, representation=True
        )
        if not rows:
            return None
        return Account.from_row(rows[0])

    async def delete_account(self, account_id: str) -> None:
        await self._request("DELETE", self.TABLE, params={"id": f"eq.{account_id}"})
        logger.info(f"Deleted account {account_id}")

    async def _clear_primary(self, user_id: str) -> None:
        await self._request("PATCH", self.TABLE, params={"user_id": f"eq.{user_id}"}, json={"is_primary": False})

    async def set_primary(self, account_id: str, user_id: str) -> Optional[Account]:
        """
        Make one account the primary one.

        Two sequential writes: clear every primary flag of the user, then set
        it on the account. A failure in between leaves no primary.
        """
        await self._clear_primary(user_id)
        return await self.update_account(account_id, {"is_primary": True})

    async def update_status(self, account_id: str, status: str, error_message: Optional[str] = None) -> None:
        """Record a probe outcome."""
        await self._request(
            "PATCH",
            self.TABLE,
            params={"id": f"eq.{account_id}"},
            json={
                "status": status,
                "error_message": error_message,
                "last_checked": utcnow().isoformat(),
            },
        )
