"""
Account Pool - the live set of storage accounts of one user session.

Features:
- Loads every account of the user from the registry and probes the active ones
- Keeps one authenticated backend client per live account
- Ranks live accounts to pick the target of an upload
- Tracks a default account (primary if connected, else first connected)
- Aggregates usage across live accounts
"""
import logging
from typing import Dict, Iterable, List, Optional

from .credentials import CredentialProvider, default_credentials
from .exceptions import AccountNotFoundError, RegistryError
from .models import (
    STATUS_CONNECTED,
    STATUS_ERROR,
    STATUS_FULL,
    SPEED_RANK,
    Account,
    AccountHandle,
    ConnectionParams,
    OperationResult,
    PoolStats,
    ProbeResult,
    utcnow,
)
from .probe import ConnectionProbe
from .registry import AccountRegistry

logger = logging.getLogger(__name__)


def select_account(accounts: Iterable[Account], required_bytes: int) -> Optional[Account]:
    """
    Pick the account that should receive required_bytes.

    Only connected, user-enabled accounts with enough remaining quota
    qualify. They are ranked by:
    1. Primary account first
    2. Faster connection speed (fast > medium > slow)
    3. Lower usage ratio

    Ties keep the input order. No I/O is performed.

    Returns:
        Best account or None if no account qualifies
    """
    candidates = [
        a for a in accounts
        if a.is_connected and a.is_active and a.has_space_for(required_bytes)
    ]
    if not candidates:
        return None

    candidates.sort(key=lambda a: (
        not a.is_primary,
        -SPEED_RANK.get(a.connection_speed, 0),
        a.usage_ratio,
    ))
    return candidates[0]


def _capacity_status(account: Account) -> str:
    if account.storage_limit > 0 and account.storage_used >= account.storage_limit:
        return STATUS_FULL
    return STATUS_CONNECTED


class AccountPool:
    """
    Live storage accounts of one user.

    The pool is owned by the session that created it; construct one per user.
    Counters (used bytes, file count) belong to the registry: the pool only
    caches snapshots and reloads them with refresh().

    Usage:
        >>> async with AccountPool(user_id) as pool:
        ...     handle = pool.select(file_size)
        ...     print(pool.stats())
    """

    def __init__(
        self,
        user_id: str,
        registry: Optional[AccountRegistry] = None,
        probe: Optional[ConnectionProbe] = None,
        credentials: Optional[CredentialProvider] = None,
        auto_initialize: bool = True,
    ):
        """
        Initialize account pool.

        Args:
            user_id: Owner of the accounts
            registry: Account registry client (default built from environment)
            probe: Connection probe (default built from environment)
            credentials: Secret key resolution (encrypted when VAULT_MASTER_KEY is set)
            auto_initialize: Run initialize() in __aenter__ (default: True)
        """
        self.user_id = user_id
        self._owns_registry = registry is None
        self._registry = registry or AccountRegistry()
        self._probe = probe or ConnectionProbe()
        self._credentials = credentials or default_credentials()
        self._auto_initialize = auto_initialize

        self._accounts: List[Account] = []
        self._handles: Dict[str, AccountHandle] = {}
        self._default_id: Optional[str] = None

    @property
    def registry(self) -> AccountRegistry:
        return self._registry

    @property
    def accounts(self) -> List[Account]:
        """Every known account, including the ones that failed probing."""
        return list(self._accounts)

    @property
    def live_accounts(self) -> List[Account]:
        """Snapshots of the accounts in the live map."""
        return [h.account for h in self._handles.values()]

    @property
    def default(self) -> Optional[AccountHandle]:
        """
        Current default account.

        Recomputed lazily when unset, e.g. after the default was removed.
        """
        if self._default_id not in self._handles:
            self._default_id = self._compute_default()
        if self._default_id is None:
            return None
        return self._handles[self._default_id]

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._handles

    async def initialize(self) -> OperationResult:
        """
        Load all accounts of the user and probe the active ones.

        Accounts that pass probing join the live map and are recorded as
        connected; the others are recorded with their error.

        Returns:
            OperationResult with the full account list, failed ones included
        """
        try:
            accounts = await self._registry.list_accounts(self.user_id)
        except RegistryError as e:
            logger.error(f"Error loading accounts for {self.user_id}: {e}")
            return OperationResult.fail(e)

        logger.info(f"Found {len(accounts)} account(s) for user {self.user_id}")
        self._accounts = accounts

        # Handles from an earlier load must pass again to stay live
        active = {a.id for a in accounts if a.is_active}
        for account_id in list(self._handles):
            if account_id not in active:
                await self.remove(account_id)

        for account in accounts:
            if account.is_active:
                await self._connect(account)
            else:
                logger.debug(f"Skipping inactive account {account.name}")

        self._default_id = self._compute_default()
        logger.info(f"{len(self._handles)} live account(s), default: {self._default_id}")
        return OperationResult.ok(self.accounts)

    async def add(self, account: Account) -> OperationResult:
        """
        Probe an account and add it to the live map.

        Becomes the default if there is none. On failure the error is
        recorded on the registry row and the account is not added.
        """
        self._remember(account)
        result = await self._connect(account)
        if result.success and self._default_id is None:
            self._default_id = account.id
        return result

    async def register(
        self,
        name: str,
        project_url: str,
        secret_key: str,
        **fields,
    ) -> OperationResult:
        """
        Store a new account after its parameters pass a probe.

        Args:
            name: Display name
            project_url: Storage project endpoint
            secret_key: Project key, sealed by the credential provider before storing
            **fields: Other registry columns (description, storage_limit,
                connection_speed, is_primary, ...)

        Returns:
            OperationResult with the stored Account
        """
        probe = await self._probe.probe(ConnectionParams(project_url=project_url, secret_key=secret_key))
        if not probe.ok:
            return OperationResult.fail(probe.error or "Failed to connect to storage project")

        row = {
            "name": name,
            "project_url": project_url,
            "secret_key": self._credentials.seal(secret_key),
            "status": STATUS_CONNECTED,
            "last_checked": utcnow().isoformat(),
            **fields,
        }
        try:
            account = await self._registry.insert_account(self.user_id, row)
        except RegistryError as e:
            await probe.backend.close()
            return OperationResult.fail(e)

        if account.is_primary:
            for other in self._known_snapshots():
                other.is_primary = False
        self._remember(account)
        await self._attach(account, probe.backend)
        if account.status != STATUS_CONNECTED:
            await self._record_status(account)
        if account.is_primary and account.is_connected:
            self._default_id = account.id
        elif self._default_id is None:
            self._default_id = self._compute_default()
        return OperationResult.ok(account)

    async def remove(self, account_id: str) -> bool:
        """
        Drop an account from the live map.

        The registry row is kept. If it was the default, the default is
        recomputed on next access.

        Returns:
            True if the account was live
        """
        handle = self._handles.pop(account_id, None)
        if handle is None:
            return False
        await handle.backend.close()
        if self._default_id == account_id:
            self._default_id = None
        logger.info(f"Removed account {handle.account.name} from the pool")
        return True

    async def delete(self, account_id: str) -> OperationResult:
        """Delete the registry row of an account, then drop it from the pool."""
        try:
            await self._registry.delete_account(account_id)
        except RegistryError as e:
            return OperationResult.fail(e)
        await self.remove(account_id)
        self._accounts = [a for a in self._accounts if a.id != account_id]
        return OperationResult.ok()

    async def set_primary(self, account_id: str) -> OperationResult:
        """Make an account the primary one, in the registry and in the pool."""
        try:
            account = await self._registry.set_primary(account_id, self.user_id)
        except RegistryError as e:
            return OperationResult.fail(e)
        if account is None:
            return OperationResult.fail(AccountNotFoundError(account_id, "Account not found"))

        for known in self._known_snapshots():
            known.is_primary = known.id == account_id
        handle = self._handles.get(account_id)
        if handle is not None and handle.account.is_connected:
            self._default_id = account_id
        return OperationResult.ok(account)

    def get(self, account_id: str) -> Optional[AccountHandle]:
        """Live handle of an account, or None."""
        return self._handles.get(account_id)

    def select(self, required_bytes: int) -> Optional[AccountHandle]:
        """
        Pick the live account that should receive required_bytes.

        Returns:
            Handle of the best account or None if no account qualifies
        """
        account = select_account(self.live_accounts, required_bytes)
        if account is None:
            return None
        return self._handles[account.id]

    async def toggle_active(self, account_id: str) -> OperationResult:
        """
        Flip the user-controlled active flag.

        The local snapshot is reverted if the registry write fails. An
        account that was skipped as inactive is probed once enabled and
        joins the live map if it passes.

        Returns:
            OperationResult with the new flag value
        """
        handle = self._handles.get(account_id)
        account = handle.account if handle is not None else self._find(account_id)
        if account is None:
            return OperationResult.fail(AccountNotFoundError(account_id, "Account not found"))

        previous = account.is_active
        account.is_active = not previous
        try:
            await self._registry.update_account(account_id, {"is_active": not previous})
        except RegistryError as e:
            account.is_active = previous
            logger.error(f"Could not toggle {account.name}: {e}")
            return OperationResult.fail(e)

        if account.is_active and handle is None:
            connected = await self._connect(account)
            if not connected.success:
                logger.warning(f"Enabled {account.name} but it is not reachable: {connected.error}")
        return OperationResult.ok(account.is_active)

    async def refresh(self, account_id: str) -> OperationResult:
        """
        Reload the snapshot of a live account from the registry.

        The account is marked full once its quota is used up, and connected
        again when space frees up.
        """
        handle = self._handles.get(account_id)
        if handle is None:
            return OperationResult.fail(AccountNotFoundError(account_id, "Account not found"))
        try:
            fresh = await self._registry.get_account(account_id)
        except RegistryError as e:
            return OperationResult.fail(e)
        if fresh is None:
            return OperationResult.fail(AccountNotFoundError(account_id, "Account not found"))

        snapshot = handle.account
        for attr in (
            "name", "description", "storage_used", "storage_limit", "files_count",
            "connection_speed", "is_primary", "is_active",
        ):
            setattr(snapshot, attr, getattr(fresh, attr))

        if snapshot.status in (STATUS_CONNECTED, STATUS_FULL):
            status = _capacity_status(snapshot)
            if status != snapshot.status:
                logger.info(f"Account {snapshot.name} is now {status}")
                snapshot.status = status
                await self._record_status(snapshot)
        return OperationResult.ok(snapshot)

    async def refresh_all(self) -> None:
        """Reload every live snapshot."""
        for account_id in list(self._handles):
            result = await self.refresh(account_id)
            if not result.success:
                logger.warning(f"Failed to refresh {account_id}: {result.error}")

    def stats(self) -> PoolStats:
        """Aggregate usage over the live accounts."""
        live = self.live_accounts
        return PoolStats(
            total_used=sum(a.storage_used for a in live),
            total_limit=sum(a.storage_limit for a in live),
            total_files=sum(a.files_count for a in live),
            accounts_count=len(live),
            connected_count=sum(1 for a in live if a.is_connected),
        )

    async def _connect(self, account: Account) -> OperationResult:
        """Probe an account, record the outcome, attach it on success."""
        try:
            params = self._credentials.resolve(account)
        except ValueError as e:
            result = ProbeResult(reachable=False, capable=False, error=f"Cannot read secret key: {e}")
        else:
            logger.info(f"Probing account: {account.name}")
            result = await self._probe.probe(params)

        if not result.ok:
            account.status = STATUS_ERROR
            account.error_message = result.error
            account.last_checked = utcnow()
            logger.error(f"Account {account.name} failed probing: {result.error}")
            await self.remove(account.id)
            await self._record_status(account)
            return OperationResult.fail(result.error or "Failed to connect to storage project")

        await self._attach(account, result.backend)
        await self._record_status(account)
        return OperationResult.ok(account)

    async def _attach(self, account: Account, backend) -> None:
        account.status = _capacity_status(account)
        account.error_message = None
        account.last_checked = utcnow()
        previous = self._handles.get(account.id)
        if previous is not None and previous.backend is not backend:
            await previous.backend.close()
        self._handles[account.id] = AccountHandle(account=account, backend=backend)
        logger.debug(f"Account {account.name} live: {account.storage_free / (1024**2):.1f} MB free")

    async def _record_status(self, account: Account) -> None:
        try:
            await self._registry.update_status(account.id, account.status, account.error_message)
        except RegistryError as e:
            logger.warning(f"Could not record status of {account.name}: {e}")

    def _remember(self, account: Account) -> None:
        for i, known in enumerate(self._accounts):
            if known.id == account.id:
                self._accounts[i] = account
                return
        self._accounts.append(account)

    def _find(self, account_id: str) -> Optional[Account]:
        for account in self._accounts:
            if account.id == account_id:
                return account
        return None

    def _known_snapshots(self) -> List[Account]:
        seen = {id(a): a for a in self._accounts}
        for handle in self._handles.values():
            seen.setdefault(id(handle.account), handle.account)
        return list(seen.values())

    def _compute_default(self) -> Optional[str]:
        live = self.live_accounts
        for account in live:
            if account.is_primary and account.is_connected:
                return account.id
        for account in live:
            if account.is_connected:
                return account.id
        return None

    async def close(self) -> None:
        """Close all client connections."""
        for handle in self._handles.values():
            await handle.backend.close()
        self._handles.clear()
        self._default_id = None
        if self._owns_registry:
            await self._registry.close()

    async def __aenter__(self) -> "AccountPool":
        if self._auto_initialize:
            await self.initialize()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    def __str__(self) -> str:
        lines = [f"AccountPool ({len(self._handles)}/{len(self._accounts)} accounts live):"]
        for account in self._accounts:
            default = " (default)" if account.id == self._default_id else ""
            lines.append(f"  {account}{default}")
        stats = self.stats()
        lines.append(f"Total free: {stats.total_free / (1024**3):.2f} GB")
        return "\n".join(lines)
