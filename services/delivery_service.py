"""
Document delivery orchestration with per-order send status.

This service drives the "Send Documents" workflow of the admin panel:

    1. Check the stage selection, the email configuration and the customer
       address (no state change if any fails)
    2. Mark the order SENDING on the status board
    3. Resolve the eligible documents for the selected review stages
    4. Compose and send the delivery email
    5. Mark the order SUCCESS or ERROR; the entry disappears after a fixed
       display window (3s on success, 5s on error) so the order can be sent
       again

THREAD MODEL:
    - A single-order send runs in its own worker thread
    - A batch runs in ONE worker thread that sends orders strictly one after
      another, in the order given. Batches are never parallelised: the
      provider rate-limits bursts.
    - StatusBoard is the only shared mutable state and is guarded by a lock
    - Orders and DeliveryRequests are frozen and safe to hand to workers

Usage:
    # At app startup
    delivery_service = DeliveryService(
        store, email_service,
        config_check=partial(check_email_configuration, app.config),
    )

    # Single order (route handler, returns immediately)
    delivery_service.start_delivery(order_id, ["review_1", "review_2"])

    # Batch (route handler, returns immediately)
    delivery_service.start_batch(selected_ids)

    # Polling
    entry = delivery_service.get_status(order_id)

    # At app shutdown
    delivery_service.shutdown()
"""

from __future__ import annotations

import threading
from typing import Callable, Collection, Dict, Iterable, List, Optional

from core.exceptions import (
    ConfigurationError,
    DeliveryInProgressError,
    DocumentDeliveryError,
    NoStagesSelectedError,
    OrderNotFoundError,
    ValidationError,
)
from core.storage_client import StoreClient
from models.delivery import (
    BatchResult,
    DeliveryRequest,
    DocumentDeliveryOptions,
    SendStatus,
    StatusEntry,
)
from models.document import ReviewStage
from models.order import Order
from modules.eligibility import resolve
from modules.email_config import EmailConfiguration, is_valid_email
from services.email_service import EmailService, DEFAULT_ACCESS_EXPIRES
from logging_config import get_logger, get_delivery_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

SUCCESS_DISPLAY_SECONDS = 3.0
ERROR_DISPLAY_SECONDS = 5.0


class StatusBoard:
    """
    Thread-safe per-order send status.

    At most one entry exists per order id. SUCCESS and ERROR entries schedule
    their own removal; the pending timer is cancelled whenever the entry is
    replaced, so a stale timer can never remove a newer status.

    Thread Safety:
        - All reads and writes go through threading.Lock
        - Timers re-check entry identity under the lock before removing
    """

    def __init__(
        self,
        success_display_seconds: float = SUCCESS_DISPLAY_SECONDS,
        error_display_seconds: float = ERROR_DISPLAY_SECONDS,
        timer_factory: Callable[..., threading.Timer] = threading.Timer
    ):
        """
        Initialize an empty board.

        Args:
            success_display_seconds: How long SUCCESS stays visible
            error_display_seconds: How long ERROR stays visible
            timer_factory: threading.Timer-compatible constructor
        """
        self.success_display_seconds = success_display_seconds
        self.error_display_seconds = error_display_seconds
        self._timer_factory = timer_factory
        self._entries: Dict[str, StatusEntry] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def get(self, order_id: str) -> Optional[StatusEntry]:
        """Current entry, or None when the order is idle."""
        with self._lock:
            return self._entries.get(order_id)

    def snapshot(self) -> Dict[str, StatusEntry]:
        """Copy of every current entry."""
        with self._lock:
            return dict(self._entries)

    def begin(self, order_id: str) -> StatusEntry:
        """
        Transition to SENDING.

        Raises:
            DeliveryInProgressError: If the order is already SENDING
        """
        with self._lock:
            current = self._entries.get(order_id)
            if current is not None and current.status == SendStatus.SENDING:
                raise DeliveryInProgressError(order_id)
            entry = StatusEntry.sending(order_id)
            self._replace(order_id, entry)
            return entry

    def mark_success(self, order_id: str) -> StatusEntry:
        """Transition SENDING -> SUCCESS and schedule the reset."""
        entry = StatusEntry.success(order_id)
        with self._lock:
            self._replace(order_id, entry)
            self._schedule_reset(order_id, entry, self.success_display_seconds)
        return entry

    def mark_error(self, order_id: str, error_message: str) -> StatusEntry:
        """Transition SENDING -> ERROR and schedule the reset."""
        entry = StatusEntry.error(order_id, error_message)
        with self._lock:
            self._replace(order_id, entry)
            self._schedule_reset(order_id, entry, self.error_display_seconds)
        return entry

    def clear(self) -> int:
        """
        Cancel every timer and drop every entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            count = len(self._entries)
            self._entries.clear()
            return count

    def _replace(self, order_id: str, entry: StatusEntry) -> None:
        # Caller holds the lock
        timer = self._timers.pop(order_id, None)
        if timer is not None:
            timer.cancel()
        self._entries[order_id] = entry

    def _schedule_reset(self, order_id: str, entry: StatusEntry, delay: float) -> None:
        # Caller holds the lock
        timer = self._timer_factory(delay, self._expire, args=(order_id, entry))
        timer.daemon = True
        self._timers[order_id] = timer
        timer.start()

    def _expire(self, order_id: str, entry: StatusEntry) -> None:
        with self._lock:
            if self._entries.get(order_id) is entry:
                del self._entries[order_id]
                self._timers.pop(order_id, None)
                logger.debug(f"Status for order {order_id[:8]} reset after {entry.status.value}")


class DeliveryService:
    """
    Orchestrates document deliveries for single orders and batches.

    The email-configuration check is injected as a callable and re-run before
    every send, so tests can swap configured and unconfigured variants.

    Attributes:
        status_board: Per-order transient status
    """

    def __init__(
        self,
        store: StoreClient,
        email_service: EmailService,
        config_check: Callable[[], EmailConfiguration],
        status_board: Optional[StatusBoard] = None
    ):
        """
        Initialize the delivery service.

        Args:
            store: Read-only order/document store
            email_service: Composes and sends the delivery email
            config_check: Returns a fresh EmailConfiguration on every call
            status_board: Board to record status on (new one if not provided)
        """
        self._store = store
        self._email_service = email_service
        self._config_check = config_check
        self.status_board = status_board or StatusBoard()

        self._current_batch: Optional[BatchResult] = None
        self._batch_lock = threading.Lock()

        # Track worker threads for shutdown
        self._active_threads: Dict[str, threading.Thread] = {}
        self._threads_lock = threading.Lock()

        logger.info("DeliveryService initialized")

    # =========================================================================
    # PRECONDITIONS
    # =========================================================================

    def check_configuration(self) -> EmailConfiguration:
        """Run the readiness check (fresh every call)."""
        return self._config_check()

    def require_configuration(self) -> EmailConfiguration:
        """
        Run the readiness check and fail if email cannot be sent.

        Raises:
            ConfigurationError: With the check's issue list
        """
        config = self._config_check()
        if not config.configured:
            logger.warning(f"Email not configured: {'; '.join(config.issues)}")
            raise ConfigurationError(config.issues)
        return config

    @staticmethod
    def require_deliverable_address(order: Order) -> None:
        """
        Check the order's customer address before anything is marked SENDING.

        Raises:
            ValidationError: If customer_email is not a valid address
        """
        if not is_valid_email(order.customer_email):
            raise ValidationError("Invalid recipient email address", field="customer_email")

    @staticmethod
    def validate_stages(review_stages: Iterable[str]) -> List[str]:
        """
        Check a stage selection.

        Returns:
            Selected stage values in canonical stage order

        Raises:
            NoStagesSelectedError: If the selection is empty
            ValidationError: If a value is not a known review stage
        """
        selected = set(review_stages)
        if not selected:
            raise NoStagesSelectedError()
        unknown = selected.difference(ReviewStage.values())
        if unknown:
            raise ValidationError(
                f"Unknown review stage(s): {', '.join(sorted(unknown))}",
                field="review_stages",
            )
        return [value for value in ReviewStage.values() if value in selected]

    # =========================================================================
    # SINGLE ORDER
    # =========================================================================

    def start_delivery(self, order_id: str, review_stages: Collection[str]) -> DeliveryRequest:
        """
        Start sending one order's documents in a worker thread.

        All checks happen here, on the caller's thread; the order is SENDING
        when this returns.

        Raises:
            NoStagesSelectedError / ValidationError: Bad stage selection
            ConfigurationError: Email service not ready
            OrderNotFoundError: Unknown order id
            ValidationError: Customer address is not a valid email
            DeliveryInProgressError: Order already SENDING
            StorageError: Store unreachable
        """
        stages = self.validate_stages(review_stages)
        self.require_configuration()

        order = self._store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        self.require_deliverable_address(order)
        request = DeliveryRequest.create(order, stages)
        self.status_board.begin(order.id)

        logger.info(f"Starting delivery for order {order.id[:8]} (stages: {', '.join(stages)})")
        self._spawn(
            key=f"order-{order.id}",
            name=f"Deliver-{order.id[:8]}",
            target=self._delivery_thread_main,
            args=(request,),
        )
        return request

    def deliver(self, order: Order, review_stages: Collection[str]) -> StatusEntry:
        """
        Send one order's documents on the calling thread.

        Same checks and transitions as start_delivery(), but blocks until the
        send resolves.

        Returns:
            The SUCCESS or ERROR entry recorded for the order
        """
        stages = self.validate_stages(review_stages)
        self.require_configuration()
        self.require_deliverable_address(order)
        self.status_board.begin(order.id)
        return self._perform(DeliveryRequest.create(order, stages))

    # =========================================================================
    # BATCH
    # =========================================================================

    @property
    def current_batch(self) -> Optional[BatchResult]:
        """Most recent batch (running or finished)."""
        with self._batch_lock:
            return self._current_batch

    @property
    def is_batch_running(self) -> bool:
        with self._batch_lock:
            return self._current_batch is not None and not self._current_batch.finished

    def start_batch(self, order_ids: Iterable[str]) -> BatchResult:
        """
        Start a batch delivery of every review stage in a worker thread.

        The configuration check gates the whole batch: if it fails nothing is
        marked SENDING.

        Raises:
            ConfigurationError: Email service not ready
            DeliveryInProgressError: Another batch is running
        """
        batch = self._claim_batch(order_ids)
        self._spawn(
            key="batch",
            name="Batch",
            target=self._batch_thread_main,
            args=(batch,),
        )
        return batch

    def run_batch(self, order_ids: Iterable[str]) -> BatchResult:
        """
        Run a batch delivery on the calling thread.

        Same gating and per-order behaviour as start_batch().
        """
        batch = self._claim_batch(order_ids)
        self._run_batch(batch)
        return batch

    def _claim_batch(self, order_ids: Iterable[str]) -> BatchResult:
        ids = list(dict.fromkeys(order_ids))
        self.require_configuration()
        with self._batch_lock:
            if self._current_batch is not None and not self._current_batch.finished:
                raise DeliveryInProgressError()
            batch = BatchResult(order_ids=ids)
            self._current_batch = batch
        logger.info(f"Batch delivery claimed for {len(ids)} order(s)")
        return batch

    def _run_batch(self, batch: BatchResult) -> None:
        stages = ReviewStage.values()
        try:
            for order_id in batch.order_ids:
                try:
                    order = self._store.get_order(order_id)
                except DocumentDeliveryError as e:
                    logger.error(f"Batch: could not load order {order_id[:8]}: {e}")
                    batch.failed[order_id] = e.message
                    continue

                if order is None:
                    logger.warning(f"Batch: order {order_id[:8]} not found, skipping")
                    batch.skipped.append(order_id)
                    continue

                try:
                    self.require_deliverable_address(order)
                except ValidationError as e:
                    logger.warning(f"Batch: order {order_id[:8]} has no usable address, not sent")
                    batch.failed[order_id] = e.message
                    continue

                try:
                    self.status_board.begin(order.id)
                except DeliveryInProgressError as e:
                    batch.failed[order_id] = e.message
                    continue

                entry = self._perform(DeliveryRequest.create(order, stages))
                if entry.status == SendStatus.SUCCESS:
                    batch.succeeded.append(order_id)
                else:
                    batch.failed[order_id] = entry.error_message
        finally:
            with self._batch_lock:
                batch.finished = True

        logger.info(
            f"Batch finished: {len(batch.succeeded)} sent, {len(batch.failed)} failed, "
            f"{len(batch.skipped)} skipped"
        )

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self, order_id: str) -> Optional[StatusEntry]:
        """Current status entry for an order, None when idle."""
        return self.status_board.get(order_id)

    def statuses(self) -> Dict[str, StatusEntry]:
        """All current status entries."""
        return self.status_board.snapshot()

    def wait(self, timeout_per_thread: float = 5.0) -> bool:
        """
        Block until every worker thread has finished.

        Args:
            timeout_per_thread: Max seconds to wait per thread

        Returns:
            True if all threads finished in time
        """
        with self._threads_lock:
            active = list(self._active_threads.items())

        all_done = True
        for key, thread in active:
            if thread.is_alive():
                thread.join(timeout=timeout_per_thread)
                if thread.is_alive():
                    logger.warning(f"Delivery thread {key} did not complete in time")
                    all_done = False
        return all_done

    def shutdown(self, timeout_per_thread: float = 5.0) -> None:
        """
        Wait for worker threads, then cancel pending status resets.

        Call this during application shutdown.
        """
        self.wait(timeout_per_thread)
        self.status_board.clear()
        logger.info("Delivery service shutdown complete")

    # =========================================================================
    # WORKERS
    # =========================================================================

    def _spawn(self, key: str, name: str, target, args: tuple) -> None:
        def run():
            set_thread_name(name)
            try:
                target(*args)
            finally:
                with self._threads_lock:
                    if self._active_threads.get(key) is threading.current_thread():
                        del self._active_threads[key]

        thread = threading.Thread(target=run, name=name, daemon=True)
        with self._threads_lock:
            self._active_threads[key] = thread
        thread.start()

    def _delivery_thread_main(self, request: DeliveryRequest) -> None:
        self._perform(request)

    def _batch_thread_main(self, batch: BatchResult) -> None:
        self._run_batch(batch)

    def _perform(self, request: DeliveryRequest) -> StatusEntry:
        """
        Resolve, compose and send for an order already marked SENDING.

        Always leaves the order in SUCCESS or ERROR.
        """
        order = request.order
        order_logger = get_delivery_logger(order.id)

        try:
            order_logger.info("Resolving documents...")
            catalog = self._store.list_documents(project_id=order.project_id)
            documents = resolve(order, catalog, request.review_stages)
            order_logger.info(f"Found {len(documents)} document(s)")

            self._email_service.send_document_delivery(
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                project_title=order.project_title,
                order_id=order.id,
                documents=documents,
                options=DocumentDeliveryOptions(
                    review_stages=_stages_label(request.review_stages),
                    access_expires=DEFAULT_ACCESS_EXPIRES,
                ),
            )

        except DocumentDeliveryError as e:
            order_logger.error(f"Delivery failed: {e}")
            return self.status_board.mark_error(order.id, e.message)

        except Exception as e:
            order_logger.error(f"Unexpected delivery failure: {e}", exc_info=True)
            return self.status_board.mark_error(order.id, str(e))

        order_logger.info("Delivery email sent")
        return self.status_board.mark_success(order.id)


def _stages_label(review_stages: Collection[str]) -> Optional[str]:
    """'Review 1, Review 3' for partial selections; None when all are selected."""
    stages = [stage for stage in ReviewStage if stage.value in review_stages]
    if len(stages) == len(ReviewStage):
        return None
    return ", ".join(stage.label for stage in stages)
