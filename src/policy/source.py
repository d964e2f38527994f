"""Reloadable policy file source.

Feeds a :class:`PermissionStore` from a YAML policy document and reloads it
when the file is rewritten. A file that fails to parse leaves the store on
its previous snapshot.
"""

import os
import threading
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple, Union

from ..authz.store import PermissionStore
from ..common.logger import get_logger
from .document import load_policy_document

logger = get_logger("policy_source")


class PolicyFileSource:
    """Loads a policy document into a store and tracks file changes."""

    def __init__(
        self,
        path: Union[str, Path],
        store: PermissionStore,
        admin_groups: Iterable[str] = (),
    ):
        """
        Initialize the source. Nothing is read until :meth:`reload`.

        Args:
            path: Policy document location
            store: Store to publish loaded policies into
            admin_groups: Admin groups added to those the document lists
        """
        self.path = Path(path)
        self.store = store
        self.admin_groups = frozenset(admin_groups)
        self._signature: Optional[Tuple[int, int]] = None
        self._lock = threading.Lock()

    def _file_signature(self) -> Tuple[int, int]:
        stat = os.stat(self.path)
        return stat.st_mtime_ns, stat.st_size

    def _reload_locked(self) -> int:
        signature = self._file_signature()
        document = load_policy_document(self.path)
        # Grants and membership go out in one snapshot
        self.store.load(
            document.entries(),
            admin_groups=self.admin_groups | frozenset(document.admin_groups),
            user_groups=document.users,
        )
        self._signature = signature
        return self.store.version

    def reload(self) -> int:
        """
        Load the file and publish it.

        Returns:
            The policy version now active

        Raises:
            FileNotFoundError: If the policy file is missing
            PolicyParseError: If the document or any permission is malformed
        """
        with self._lock:
            version = self._reload_locked()
        logger.info(f"Policy file {self.path} loaded as version {version}")
        return version

    def refresh_if_changed(self) -> bool:
        """Reload if the file changed since the last successful load."""
        with self._lock:
            if self._signature is not None and self._file_signature() == self._signature:
                return False
            version = self._reload_locked()
        logger.info(f"Policy file {self.path} changed, reloaded as version {version}")
        return True

    def groups_of(self, principal: str) -> FrozenSet[str]:
        """Group membership declared in the ``users`` section of the active policy."""
        return self.store.snapshot.groups_of(principal)
