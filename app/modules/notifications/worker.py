"""Delivery worker: runs one delivery attempt for a queued notification.

For each attempt the worker loads the notification, moves it to PROCESSING,
renders its template, resolves the recipient, calls the channel under a hard
timeout, moves the notification to its next status and appends exactly one
delivery log row.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications import (
    ChannelRegistry,
    ChannelResult,
    NotificationChannel,
    RenderedMessage,
)
from infrastructure.queue import JobResult, QueueJob
from modules.notifications.delivery_log import DeliveryLogRepository
from modules.notifications.domain.models import (
    DeliveryLog,
    DeliveryStatus,
    NotificationStatus,
)
from modules.notifications.recipients import RecipientResolver
from modules.notifications.store import NotificationStore
from modules.notifications.templates import TemplateRepository, render_template

logger = get_module_logger()


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt.

    Attributes:
        notification_id: Notification processed
        attempt: Queue attempt number (1-based)
        success: True when the message was delivered (or already had been)
        skipped: True when the notification was already terminal
        final: True when this was the last attempt the queue allows
        error: Failure reason reported by the channel
        error_code: Channel error code
        log_attempt: Attempt number recorded in the delivery log
    """

    notification_id: str
    attempt: int
    success: bool
    skipped: bool = False
    final: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None
    log_attempt: Optional[int] = None


class DeliveryWorker:
    """Orchestrates a single delivery attempt.

    A channel call that outlives `send_timeout_seconds` is reported as
    SEND_TIMEOUT but keeps its executor thread until the provider request
    returns; cancelling the future cannot interrupt it. Channels bound their
    own HTTP calls with the same timeout, and `max_concurrent_sends` should
    exceed the number of threads calling `process` so a few hung calls do
    not starve the rest.

    Args:
        store: Notification store
        delivery_log: Delivery attempt log
        templates: Template repository
        channels: Registry of channel implementations
        recipients: Recipient resolver
        send_timeout_seconds: Hard limit for one channel call
        max_concurrent_sends: Size of the executor running channel calls
    """

    def __init__(
        self,
        store: NotificationStore,
        delivery_log: DeliveryLogRepository,
        templates: TemplateRepository,
        channels: ChannelRegistry,
        recipients: RecipientResolver,
        send_timeout_seconds: float = 10.0,
        max_concurrent_sends: int = 10,
    ):
        self.store = store
        self.delivery_log = delivery_log
        self.templates = templates
        self.channels = channels
        self.recipients = recipients
        self.send_timeout_seconds = send_timeout_seconds
        self.max_concurrent_sends = max_concurrent_sends
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrent_sends, thread_name_prefix="channel-send"
        )

    def process_job(self, job: QueueJob) -> JobResult:
        """JobProcessor entry point used by the worker pool."""
        outcome = self.process(job.notification_id, job.attempt, job.max_attempts)
        if outcome.success:
            return JobResult.succeeded()
        return JobResult.retry(outcome.error or "Failed to send notification")

    def process(
        self, notification_id: str, attempt: int, max_attempts: int
    ) -> DeliveryOutcome:
        """Run delivery attempt `attempt` of `max_attempts` for a notification.

        Returns:
            DeliveryOutcome. A failed send is reported through the outcome, not raised.

        Raises:
            Exception: Anything failing before the channel call (unknown
                template, store unavailable, ...) after it was recorded, and
                a failed status update after the send once the attempt is logged.
        """
        final = attempt >= max_attempts
        log = logger.bind(
            notification_id=notification_id, attempt=attempt, max_attempts=max_attempts
        )
        log.info("delivery_attempt_started")

        try:
            notification = self.store.get(notification_id)
            if notification.is_terminal:
                log.info("delivery_skipped_terminal", status=notification.status.value)
                return DeliveryOutcome(
                    notification_id=notification_id,
                    attempt=attempt,
                    success=True,
                    skipped=True,
                    final=final,
                )

            self.store.mark_processing(notification_id)
            template = self.templates.get(notification.template_id)
            message = render_template(template, notification.data)
            recipient = self.recipients.resolve(
                notification.user_id, notification.channel
            )
            channel = self.channels.get(notification.channel)
        except Exception as e:
            log.error("delivery_preparation_failed", error=str(e), exc_info=True)
            self._record_preparation_failure(notification_id, e, final)
            raise

        log.info("delivery_sending", channel=channel.name)
        result = self._send(channel, recipient, message, notification.data)

        # The attempt is logged even when the status update raises
        if result.success:
            try:
                self.store.mark_sent(notification_id)
            finally:
                entry = self._append_log(
                    notification_id,
                    DeliveryStatus.SENT,
                    provider_response=result.diagnostics(),
                )
            log.info(
                "notification_sent",
                channel=channel.name,
                provider_message_id=result.provider_message_id,
            )
            return DeliveryOutcome(
                notification_id=notification_id,
                attempt=attempt,
                success=True,
                final=final,
                log_attempt=entry.attempt if entry else None,
            )

        error = result.error or "Failed to send notification"
        try:
            if final:
                self.store.mark_failed(notification_id, error)
            else:
                self.store.mark_retrying(notification_id, error)
        finally:
            entry = self._append_log(
                notification_id,
                DeliveryStatus.FAILED,
                error_message=error,
                provider_response=result.diagnostics(),
            )
        log.warning(
            "notification_failed_permanently" if final else "notification_will_retry",
            channel=channel.name,
            error=error,
            error_code=result.error_code,
            retryable=result.retryable,
        )
        return DeliveryOutcome(
            notification_id=notification_id,
            attempt=attempt,
            success=False,
            final=final,
            error=error,
            error_code=result.error_code,
            log_attempt=entry.attempt if entry else None,
        )

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)

    def _send(
        self,
        channel: NotificationChannel,
        recipient: str,
        message: RenderedMessage,
        data: Dict[str, Any],
    ) -> ChannelResult:
        future = self._executor.submit(channel.send, recipient, message, data)
        try:
            return future.result(timeout=self.send_timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                "channel_send_timeout",
                channel=channel.name,
                timeout_seconds=self.send_timeout_seconds,
            )
            return ChannelResult.failed(
                channel=channel.name,
                error=f"Send timed out after {self.send_timeout_seconds}s",
                error_code="SEND_TIMEOUT",
                retryable=True,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("channel_send_exception", channel=channel.name, error=str(e))
            return ChannelResult.failed(
                channel=channel.name,
                error=str(e),
                error_code="SEND_ERROR",
                retryable=True,
            )

    def _record_preparation_failure(
        self, notification_id: str, error: Exception, final: bool
    ) -> None:
        # Best effort: neither write may replace the original error
        self._append_log(
            notification_id,
            DeliveryStatus.FAILED,
            error_message=str(error),
            provider_response={"error": str(error)},
        )
        try:
            if final:
                self.store.mark_failed(notification_id, str(error))
            else:
                self.store.mark_retrying(notification_id, str(error))
        except Exception as status_error:  # pylint: disable=broad-except
            logger.error(
                "notification_status_update_failed",
                notification_id=notification_id,
                target_status=(
                    NotificationStatus.FAILED if final else NotificationStatus.RETRYING
                ).value,
                error=str(status_error),
            )

    def _append_log(
        self,
        notification_id: str,
        status: DeliveryStatus,
        error_message: Optional[str] = None,
        provider_response: Optional[Dict[str, Any]] = None,
    ) -> Optional[DeliveryLog]:
        try:
            return self.delivery_log.append(
                notification_id,
                status,
                error_message=error_message,
                provider_response=provider_response,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "delivery_log_write_failed",
                notification_id=notification_id,
                status=status.value,
                error=str(e),
            )
            return None
