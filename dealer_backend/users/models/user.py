"""
PATH: users/models/user.py

CUSTOM USER MODEL

- email is the login identity.
- role is one of permissions.roles.Role (closed set).
- Dealer roles are bound to exactly one dealership.
- EVM staff are bound to exactly one manufacturer.
"""

from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models

from permissions.roles import DEALER_ROLES, MANUFACTURER_ROLES, Role


# ---------------- USER MANAGER ----------------
class UserManager(BaseUserManager):
    def create_user(self, email=None, password=None, **extra_fields):
        email = (email or "").strip()
        if not email:
            raise ValueError("An email address is required")

        email = self.normalize_email(email)
        extra_fields.setdefault("is_active", True)

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.full_clean()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Superuser must have an email")
        if not password:
            raise ValueError("Superuser must have a password")

        extra_fields.setdefault("role", Role.ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_active", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True")

        return self.create_user(email=email, password=password, **extra_fields)


# ---------------- USER MODEL ----------------
class User(AbstractBaseUser, PermissionsMixin):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.DEALER_STAFF,
    )

    dealership = models.ForeignKey(
        "catalog.Dealership",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="staff",
    )
    manufacturer = models.ForeignKey(
        "catalog.Manufacturer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="staff",
    )

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    class Meta:
        ordering = ["-created_at"]

    def clean(self):
        if self.email:
            self.email = self.__class__.objects.normalize_email(self.email).strip()

        if self.role in DEALER_ROLES and not self.dealership_id:
            raise ValidationError({"dealership": "Dealer roles require a dealership"})
        if self.role in MANUFACTURER_ROLES and not self.manufacturer_id:
            raise ValidationError({"manufacturer": "EVM staff require a manufacturer"})

    def __str__(self):
        return f"{self.email} ({self.role})"
