"""Batch transport between the engine and the shop."""

import logging

from ..api import SpwigClient
from ..models import DevSession, FileChange, SyncResult, ValidationReport

logger = logging.getLogger(__name__)


def collapse_batch(batch: list[FileChange]) -> list[FileChange]:
    """Keep only the last change for each path, in first-seen order."""
    latest: dict[str, FileChange] = {}
    for change in batch:
        latest[change.path] = change
    return list(latest.values())


class SyncTransport:
    """Sends batches to the shop and interprets the result.

    A request that fails (network, timeout, non-2xx) raises a SpwigAPIError.
    A request the shop processed but partly rejected returns a SyncResult
    with ``success=False``. Nothing is retried here.
    """

    def __init__(self, client: SpwigClient):
        self.client = client

    def push(self, session: DevSession, batch: list[FileChange]) -> SyncResult:
        """Send one batch.

        Args:
            session: Active dev session
            batch: Files to sync

        Returns:
            SyncResult for the batch
        """
        files = collapse_batch(batch)
        if not files:
            return SyncResult(success=True)

        paths = [f.path for f in files]
        logger.debug(f"Pushing {len(files)} file(s)")
        response = self.client.sync_files(session.token, files)
        result = SyncResult.from_dict(response or {}, requested=paths)
        logger.debug(f"Push result: {result.summary()}")
        return result

    def validate(self, session: DevSession) -> ValidationReport:
        """Run the shop's read-only theme check."""
        response = self.client.validate_theme(session.token)
        return ValidationReport.from_dict(response or {})

    def delete(self, session: DevSession, paths: list[str]) -> SyncResult:
        """Notify the shop that files were removed locally."""
        unique = list(dict.fromkeys(paths))
        if not unique:
            return SyncResult(success=True)
        response = self.client.delete_files(session.token, unique)
        return SyncResult.from_dict(response or {}, requested=unique)
