"""Contract for handing archive creation to an asynchronous job runner."""

from __future__ import annotations

from abc import ABC, abstractmethod

CREATE_MESSAGE_TEMPLATE = "Creating a new backup in the background... ({option})"


class BackupJobTrigger(ABC):
    """Accepts "create backup" requests without waiting for them to run."""

    @abstractmethod
    def enqueue(self, option: str, queue_name: str) -> None:
        """Queue a backup run.

        Args:
            option: Scope of the run ('' for a full backup, 'only-db', 'only-files')
            queue_name: Job queue identifier

        Must return immediately.
        """
        pass
