# orders/models/status_log.py

"""
ORDER STATUS LOG (IMMUTABLE)

Exactly one row per successful order state transition,
written in the same transaction as the status change.
Created once. Never updated. Never deleted.
"""

from django.conf import settings
from django.db import models

from .order import Order


class OrderStatusLog(models.Model):
    id = models.BigAutoField(primary_key=True)

    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name="status_logs",
    )

    old_status = models.CharField(max_length=32, blank=True)
    new_status = models.CharField(max_length=32)

    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_status_changes",
    )
    changed_by_name = models.CharField(max_length=255, blank=True)

    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    payment_info = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="idx_statuslog_order_created"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("OrderStatusLog records are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("OrderStatusLog records cannot be deleted")

    def __str__(self):
        return f"{self.order_id}: {self.old_status or '-'} → {self.new_status}"
