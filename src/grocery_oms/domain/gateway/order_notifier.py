"""Port to the realtime channel that pushes new orders to staff dashboards."""

from __future__ import annotations

from abc import ABC, abstractmethod


class OrderNotifier(ABC):

    @abstractmethod
    def notify_new_order(self, summary: dict) -> None:
        """Fire and forget; callers ignore any failure."""
