# core/tests/fixtures.py

"""
Shared builders for engine tests (plain functions, no fixture framework).
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from catalog.models import Customer, Dealership, Manufacturer, Vehicle
from inventory.services.stock_ledger import Owner, register_stock
from permissions.roles import ActorContext, Role

User = get_user_model()


def make_manufacturer(name=None) -> Manufacturer:
    return Manufacturer.objects.create(name=name or f"Maker {uuid.uuid4().hex[:6]}")


def make_dealership(name=None) -> Dealership:
    return Dealership.objects.create(name=name or f"Dealer {uuid.uuid4().hex[:6]}")


def make_vehicle(manufacturer, *, price="100.00", colors=("Red", "Blue"), status=Vehicle.STATUS_ACTIVE) -> Vehicle:
    return Vehicle.objects.create(
        manufacturer=manufacturer,
        name="VF e34",
        model_name="e34",
        sku=f"VF-{uuid.uuid4().hex[:8].upper()}",
        price=Decimal(price),
        color_options=list(colors),
        status=status,
    )


def make_customer(dealership=None, name="Nguyen Van A") -> Customer:
    return Customer.objects.create(dealership=dealership, full_name=name, phone="0900000000")


def make_user(*, role=Role.DEALER_STAFF, dealership=None, manufacturer=None, email=None):
    return User.objects.create_user(
        email=email or f"{role}-{uuid.uuid4().hex[:6]}@example.com",
        password="pass12345",
        full_name=f"Test {role}",
        role=role,
        dealership=dealership,
        manufacturer=manufacturer,
    )


def actor_for(user) -> ActorContext:
    return ActorContext.from_user(user)


def stock(vehicle, owner: Owner, quantity, *, color="Red", minutes_ago=0, unit_cost=None):
    return register_stock(
        vehicle=vehicle,
        owner=owner,
        quantity=quantity,
        color=color,
        unit_cost=unit_cost,
        received_at=timezone.now() - timedelta(minutes=minutes_ago),
    )
