# users/management/commands/ensure_superuser.py

"""
Admin bootstrap for fresh deployments.

- AUTO_ADMIN_EMAIL + AUTO_ADMIN_PASSWORD (required), AUTO_ADMIN_NAME (optional)
- Creates the account with role=admin, or promotes an existing one and
  resets its password.
- Never prints the password.
"""

from __future__ import annotations

import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from permissions.roles import Role


class Command(BaseCommand):
    help = "Create or promote the bootstrap admin account from AUTO_ADMIN_* env vars."

    def handle(self, *args, **options):
        email = (os.environ.get("AUTO_ADMIN_EMAIL") or "").strip().lower()
        password = (os.environ.get("AUTO_ADMIN_PASSWORD") or "").strip()
        full_name = (os.environ.get("AUTO_ADMIN_NAME") or "Administrator").strip()

        if not email or not password:
            self.stdout.write(self.style.WARNING("AUTO_ADMIN_EMAIL / AUTO_ADMIN_PASSWORD not set. Skipping."))
            return

        User = get_user_model()

        with transaction.atomic():
            user = User.objects.select_for_update().filter(email__iexact=email).first()

            if user is None:
                User.objects.create_superuser(email=email, password=password, full_name=full_name)
                self.stdout.write(self.style.SUCCESS(f"Admin created: {email}"))
                return

            # admin role carries no dealership / manufacturer scope
            user.role = Role.ADMIN
            user.dealership = None
            user.manufacturer = None
            user.is_active = True
            user.is_staff = True
            user.is_superuser = True
            user.set_password(password)
            user.save()
            self.stdout.write(self.style.SUCCESS(f"Admin promoted: {email}"))
