# catalog/models/customer.py

import uuid

from django.db import models

from .party import Dealership


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    dealership = models.ForeignKey(
        Dealership,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="customers",
    )

    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, blank=True, db_index=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["full_name"]

    def __str__(self):
        return self.full_name
