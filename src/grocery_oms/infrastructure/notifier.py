"""OrderNotifier that publishes new orders to the log stream.

Dashboards tail the JSON log for ``new_order`` events when no realtime
channel is wired in.
"""

from __future__ import annotations

import structlog

from grocery_oms.domain.gateway.order_notifier import OrderNotifier

logger = structlog.get_logger(__name__)


class LoggingOrderNotifier(OrderNotifier):

    def notify_new_order(self, summary: dict) -> None:
        logger.info("new_order", **summary)
