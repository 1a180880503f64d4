# permissions/tests/test_roles.py

from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIRequestFactory

from catalog.models import Customer
from core.tests.fixtures import make_customer, make_dealership, make_manufacturer, make_user
from permissions.roles import (
    CAP_DEBTS_PAY_MANUFACTURER,
    CAP_INVENTORY_INTAKE,
    CAP_ORDERS_CANCEL,
    CAP_ORDERS_VIEW,
    CAP_REQUESTS_APPROVE,
    CAP_REQUESTS_DISTRIBUTE,
    ActorContext,
    HasAnyCapability,
    HasCapability,
    Role,
    has_capability,
    scope_queryset,
)


class CapabilityMapTests(SimpleTestCase):
    """
    GUARANTEES:
    - dealer staff sell but never cancel or touch manufacturer debt
    - only manufacturers distribute and register stock
    - unknown roles have no capabilities
    """

    def test_dealer_staff(self):
        self.assertTrue(has_capability(Role.DEALER_STAFF, CAP_ORDERS_VIEW))
        self.assertFalse(has_capability(Role.DEALER_STAFF, CAP_ORDERS_CANCEL))
        self.assertFalse(has_capability(Role.DEALER_STAFF, CAP_REQUESTS_APPROVE))
        self.assertFalse(has_capability(Role.DEALER_STAFF, CAP_DEBTS_PAY_MANUFACTURER))

    def test_dealer_manager(self):
        self.assertTrue(has_capability(Role.DEALER_MANAGER, CAP_ORDERS_CANCEL))
        self.assertTrue(has_capability(Role.DEALER_MANAGER, CAP_REQUESTS_APPROVE))
        self.assertFalse(has_capability(Role.DEALER_MANAGER, CAP_REQUESTS_DISTRIBUTE))

    def test_manufacturer_staff(self):
        self.assertTrue(has_capability(Role.EVM_STAFF, CAP_REQUESTS_DISTRIBUTE))
        self.assertTrue(has_capability(Role.EVM_STAFF, CAP_INVENTORY_INTAKE))
        self.assertFalse(has_capability(Role.EVM_STAFF, CAP_ORDERS_VIEW))

    def test_admin_has_everything(self):
        self.assertTrue(has_capability(Role.ADMIN, CAP_REQUESTS_DISTRIBUTE))
        self.assertTrue(has_capability("admin", CAP_ORDERS_CANCEL))

    def test_unknown_role_has_nothing(self):
        self.assertFalse(has_capability("cashier", CAP_ORDERS_VIEW))
        self.assertFalse(has_capability(None, CAP_ORDERS_VIEW))

    def test_system_actor(self):
        actor = ActorContext.system()
        self.assertIsNone(actor.user_id)
        self.assertEqual(actor.display_name, "system")
        self.assertEqual(ActorContext.from_user(AnonymousUser()).display_name, "system")


class _View:
    def __init__(self, required_capability=None, required_any_capabilities=None):
        self.required_capability = required_capability
        self.required_any_capabilities = required_any_capabilities


class PermissionClassTests(TestCase):
    """
    GUARANTEES:
    - HasCapability denies by default when a view declares nothing
    - anonymous users are denied everywhere
    - scope_queryset never leaks another dealership's rows
    """

    def setUp(self):
        self.factory = APIRequestFactory()
        self.dealer = make_dealership()
        self.mfr = make_manufacturer()

        self.admin = make_user(role=Role.ADMIN)
        self.manager = make_user(role=Role.DEALER_MANAGER, dealership=self.dealer)
        self.staff = make_user(role=Role.DEALER_STAFF, dealership=self.dealer)
        self.evm = make_user(role=Role.EVM_STAFF, manufacturer=self.mfr)

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    def _request_for(self, user=None):
        request = self.factory.get("/")
        request.user = user or AnonymousUser()
        return request

    # --------------------------------------------------
    # HasCapability / HasAnyCapability
    # --------------------------------------------------

    def test_has_capability(self):
        perm = HasCapability()
        view = _View(required_capability=CAP_ORDERS_CANCEL)

        self.assertTrue(perm.has_permission(self._request_for(self.manager), view))
        self.assertFalse(perm.has_permission(self._request_for(self.staff), view))
        self.assertFalse(perm.has_permission(self._request_for(), view))

    def test_missing_requirement_denies(self):
        self.assertFalse(HasCapability().has_permission(self._request_for(self.admin), _View()))
        self.assertFalse(HasAnyCapability().has_permission(self._request_for(self.admin), _View()))

    def test_has_any_capability(self):
        perm = HasAnyCapability()
        view = _View(required_any_capabilities={CAP_REQUESTS_DISTRIBUTE, CAP_REQUESTS_APPROVE})

        self.assertTrue(perm.has_permission(self._request_for(self.manager), view))
        self.assertTrue(perm.has_permission(self._request_for(self.evm), view))
        self.assertFalse(perm.has_permission(self._request_for(self.staff), view))
        self.assertFalse(perm.has_permission(self._request_for(), view))

    # --------------------------------------------------
    # scope_queryset
    # --------------------------------------------------

    def test_dealer_scope(self):
        mine = make_customer(self.dealer, name="Mine")
        make_customer(make_dealership(), name="Theirs")

        qs = scope_queryset(Customer.objects.all(), self.staff, dealership_field="dealership_id")
        self.assertEqual(list(qs), [mine])

    def test_admin_sees_all_and_unknown_sees_none(self):
        make_customer(self.dealer)
        make_customer(make_dealership())

        self.assertEqual(scope_queryset(Customer.objects.all(), self.admin).count(), 2)
        self.assertEqual(scope_queryset(Customer.objects.all(), AnonymousUser()).count(), 0)

    def test_dealer_without_field_sees_nothing(self):
        make_customer(self.dealer)
        self.assertEqual(scope_queryset(Customer.objects.all(), self.manager).count(), 0)
