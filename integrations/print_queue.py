"""
Print queue integration for shelf labels.

Every record that lands in the staged set is announced to the label
printer queue as {"sku": ..., "shelf_id": "unknown"}.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional
import requests
import structlog

from config import settings

logger = structlog.get_logger(__name__)

UNKNOWN_SHELF = "unknown"


class PrintQueueError(Exception):
    """Print queue request error."""
    pass


def build_print_item(sku: Optional[str], shelf_id: str = UNKNOWN_SHELF) -> dict:
    """
    Build the print item payload.

    An empty SKU is sent as "unknown".
    """
    return {"sku": sku or UNKNOWN_SHELF, "shelf_id": shelf_id}


class PrintQueueClient:
    """
    Sends print items to the configured endpoint.

    notify_staged() hands the request to a small worker pool and returns
    at once, so staging never waits on the printer.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_workers: int = 2,
    ):
        self.url = url if url is not None else settings.print_queue_url
        self.timeout = timeout or settings.print_queue_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="print-queue",
        )

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def send(self, item: dict) -> bool:
        """
        Post one print item.

        Returns:
            True if sent, False if no endpoint is configured

        Raises:
            PrintQueueError: If the request fails
        """
        if not self.configured:
            logger.debug("print_queue_not_configured_skipping_send", sku=item.get("sku"))
            return False

        try:
            response = requests.post(self.url, json=item, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("print_queue_request_failed", sku=item.get("sku"), error=str(e))
            raise PrintQueueError(f"Failed to queue print item: {str(e)}")

        logger.info("print_item_queued", sku=item.get("sku"))
        return True

    def _deliver(self, sku: Optional[str]) -> bool:
        try:
            return self.send(build_print_item(sku))
        except PrintQueueError as e:
            logger.warning("print_item_dropped", sku=sku, error=str(e))
            return False

    def notify_staged(self, sku: Optional[str]) -> "Future[bool]":
        """
        Fire-and-forget announcement of a staged record.

        Returns a Future resolving to True when the item was queued and
        False when it was skipped or failed. Failures are logged, never
        raised.
        """
        if not self.configured:
            done: Future = Future()
            done.set_result(False)
            return done
        return self._executor.submit(self._deliver, sku)

    def close(self) -> None:
        """Wait for pending print items and stop the worker pool."""
        self._executor.shutdown(wait=True)
