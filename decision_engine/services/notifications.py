"""
Notification hook implementations.
"""
import logging

from decision_engine.models.schemas import SessionEvent

logger = logging.getLogger(__name__)


class LoggingNotificationHook:
    """
    NotificationHook that writes each transition to the log.
    Stands in for the real-time transport.
    """

    async def publish(self, event: SessionEvent) -> None:
        logger.info(
            f"Session event {event.type.value}",
            extra={
                "session_id": event.session_id,
                "group_id": event.group_id,
                "user_id": event.user_id,
            },
        )
