"""Caller-facing push notification orchestration."""

from __future__ import annotations

import asyncio
import logging
import uuid

from devicepush.notifications.contracts import CredentialError, DeliveryOutcome
from devicepush.notifications.device_repo import DeviceRepository
from devicepush.notifications.dispatcher import NotificationDispatcher
from devicepush.notifications.envelope import redact_token

logger = logging.getLogger(__name__)


class PushNotificationService:
  """Runs dispatches for request handlers and cleans up devices the provider no longer knows."""

  def __init__(self, *, dispatcher: NotificationDispatcher, device_repo: DeviceRepository, prune_unregistered: bool = True) -> None:
    self._dispatcher = dispatcher
    self._device_repo = device_repo
    self._prune_unregistered = prune_unregistered
    self._background_tasks: set[asyncio.Task[list[DeliveryOutcome]]] = set()

  async def notify_user(self, *, user_id: uuid.UUID, title: str, body: str) -> list[DeliveryOutcome]:
    """Dispatch to all of a user's devices; CredentialError propagates to the caller."""
    outcomes = await self._dispatcher.dispatch(user_id, title, body)

    if self._prune_unregistered:
      await self._prune(outcomes)

    return outcomes

  def schedule_notify_user(self, *, user_id: uuid.UUID, title: str, body: str) -> asyncio.Task[list[DeliveryOutcome]]:
    """Dispatch in the background so API responses are never blocked by push delivery."""
    task = asyncio.create_task(self.notify_user(user_id=user_id, title=title, body=body))
    # Hold a reference until completion so the task is not garbage collected mid-flight.
    self._background_tasks.add(task)
    task.add_done_callback(self._background_tasks.discard)
    task.add_done_callback(self._log_task_error)
    return task

  async def _prune(self, outcomes: list[DeliveryOutcome]) -> None:
    for outcome in outcomes:
      if not outcome.is_unregistered:
        continue

      try:
        await self._device_repo.delete_by_token(token=outcome.device.token)
      except Exception as exc:  # noqa: BLE001
        logger.error("Failed deleting unregistered push device device=%s error=%s", redact_token(outcome.device.token), exc, exc_info=True)
      else:
        logger.info("Deleted unregistered push device device=%s", redact_token(outcome.device.token))

  @staticmethod
  def _log_task_error(task: asyncio.Task[list[DeliveryOutcome]]) -> None:
    """Log background task exceptions to avoid silent delivery failures."""
    if task.cancelled():
      return

    exc = task.exception()
    if exc is None:
      return

    if isinstance(exc, CredentialError):
      logger.error("Background push dispatch aborted; access token unavailable: %s", exc)
    else:
      logger.error("Background push dispatch task failed: %s", exc, exc_info=exc)
