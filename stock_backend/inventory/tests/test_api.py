# inventory/tests/test_api.py

import uuid
from datetime import date

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from inventory.models import LedgerEntry, Lot, StockAggregate
from inventory.services import allocator

from .base import InventoryTestCase

User = get_user_model()


class InventoryApiTestCase(InventoryTestCase):
    def setUp(self):
        super().setUp()
        self.admin = User.objects.create_superuser(
            username="admin_user",
            email="admin@example.com",
            password="password123",
        )
        self.client = APIClient()
        self.client.force_authenticate(self.admin)

    def user_with_role(self, role: str):
        user = User.objects.create_user(username=f"{role}_user", password="password123")
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)
        return user


class LotApiTests(InventoryApiTestCase):
    """
    GUARANTEES:
    - POST lots/ receives stock (201) and returns the generated batch number
    - lot actions map service errors to 400 / 404 / 409
    - there is no update or delete route
    """

    def test_create_lot(self):
        response = self.client.post(
            "/api/inventory/lots/",
            {
                "product_id": str(self.product.id),
                "quantity": 24,
                "expiry_date": "2025-08-31",
                "cost_per_unit": "4.75",
                "supplier": "Fidson",
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["quantity"], 24)
        self.assertEqual(response.data["status"], Lot.Status.ACTIVE)
        self.assertEqual(response.data["batch_number"], "BT120124-1")

        entry = LedgerEntry.objects.get(lot_id=response.data["id"])
        self.assertEqual(entry.actor, "admin_user")

    def test_create_lot_rejects_bad_input(self):
        response = self.client.post(
            "/api/inventory/lots/",
            {"product_id": str(self.product.id), "quantity": 0},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            "/api/inventory/lots/",
            {"product_id": str(uuid.uuid4()), "quantity": 5},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("product_id", response.data["detail"])

        self.assertFalse(Lot.objects.exists())

    def test_list_is_fefo_and_filterable(self):
        late = self.make_lot(5, date(2025, 9, 1))
        early = self.make_lot(5, date(2025, 2, 1))

        response = self.client.get(
            "/api/inventory/lots/", {"product_id": str(self.product.id)}
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["id"] for row in response.data["results"]], [early.id, late.id])

        response = self.client.get(
            "/api/inventory/lots/", {"expiring_before": "2025-03-01"}
        )
        self.assertEqual([row["id"] for row in response.data["results"]], [early.id])

    def test_retrieve_unknown_lot(self):
        response = self.client.get("/api/inventory/lots/999999/")
        self.assertEqual(response.status_code, 404)

    def test_adjust_and_errors(self):
        lot = self.make_lot(10, None)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/adjust/",
            {"new_quantity": 8, "reason": "recount"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["quantity"], 8)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/adjust/",
            {"new_quantity": 11, "reason": "too many"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/adjust/",
            {"new_quantity": 8, "reason": "no change"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.reload(lot).quantity, 8)

        response = self.client.post(
            "/api/inventory/lots/424242/adjust/",
            {"new_quantity": 1, "reason": "ghost"},
            format="json",
        )
        self.assertEqual(response.status_code, 404)

    def test_quarantine_release_and_reserve(self):
        lot = self.make_lot(10, None)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/quarantine/", {"reason": "recall"}, format="json"
        )
        self.assertEqual(response.data["status"], Lot.Status.QUARANTINED)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/release/", {"reason": "cleared"}, format="json"
        )
        self.assertEqual(response.data["status"], Lot.Status.ACTIVE)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/reserve/", {"quantity": 11}, format="json"
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["available"], 10)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/reserve/", {"quantity": 4}, format="json"
        )
        self.assertEqual(response.data["available_quantity"], 6)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/release-reservation/", {"quantity": 4}, format="json"
        )
        self.assertEqual(response.data["reserved_quantity"], 0)

    def test_damage(self):
        lot = self.make_lot(10, None)

        response = self.client.post(
            f"/api/inventory/lots/{lot.id}/damage/",
            {"quantity": 2, "reason": "crushed"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["quantity"], 8)

    def test_no_update_or_delete(self):
        lot = self.make_lot(10, None)

        self.assertEqual(
            self.client.patch(f"/api/inventory/lots/{lot.id}/", {"quantity": 1}).status_code,
            405,
        )
        self.assertEqual(self.client.delete(f"/api/inventory/lots/{lot.id}/").status_code, 405)


class FulfillmentApiTests(InventoryApiTestCase):
    def setUp(self):
        super().setUp()
        self.lot_a = self.make_lot(5, date(2025, 1, 1), cost_per_unit="2.00")
        self.lot_b = self.make_lot(10, date(2025, 5, 1), cost_per_unit="3.00")

    def fulfill(self, quantity, reference="POS-1"):
        return self.client.post(
            "/api/inventory/fulfillments/",
            {"product_id": str(self.product.id), "quantity": quantity, "reference": reference},
            format="json",
        )

    def test_fulfill_and_replay(self):
        response = self.fulfill(7)

        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.data["replayed"])
        self.assertEqual(
            [(line["lot_id"], line["quantity"]) for line in response.data["lines"]],
            [(self.lot_a.id, 5), (self.lot_b.id, 2)],
        )
        self.assertEqual(response.data["total_cost"], "16.00")

        replay = self.fulfill(7)
        self.assertEqual(replay.status_code, 200)
        self.assertTrue(replay.data["replayed"])
        self.assertEqual(replay.data["lines"], response.data["lines"])
        self.assertEqual(self.reload(self.lot_b).quantity, 8)

    def test_insufficient_stock_is_409(self):
        response = self.fulfill(16)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["available"], 15)
        self.assertEqual(response.data["requested"], 16)

    def test_reference_reuse_with_other_quantity_is_400(self):
        self.fulfill(2)
        self.assertEqual(self.fulfill(3).status_code, 400)

    def test_return(self):
        self.fulfill(7)

        response = self.client.post(
            "/api/inventory/fulfillments/return/",
            {"product_id": str(self.product.id), "reference": "POS-1", "quantity": 3},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["quantity"], 3)
        self.assertEqual(self.reload(self.lot_b).quantity, 10)
        self.assertEqual(self.reload(self.lot_a).quantity, 1)


class StockApiTests(InventoryApiTestCase):
    def test_stock_level(self):
        lot = self.make_lot(10, None)
        self.make_lot(4, None)
        self.client.post(
            f"/api/inventory/lots/{lot.id}/reserve/", {"quantity": 3}, format="json"
        )

        response = self.client.get(f"/api/inventory/stock/{self.product.id}/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total"], 14)
        self.assertEqual(response.data["available"], 11)

    def test_unknown_product_is_404(self):
        response = self.client.get(f"/api/inventory/stock/{uuid.uuid4()}/")
        self.assertEqual(response.status_code, 404)

    def test_reconcile_reports_drift(self):
        self.make_lot(10, None)
        StockAggregate.objects.filter(product=self.product).update(total=4)

        with self.assertLogs("inventory.aggregates", level="WARNING"):
            response = self.client.post(f"/api/inventory/stock/{self.product.id}/reconcile/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total"], 10)
        self.assertEqual(response.data["drift"], 6)
        self.assertIsNotNone(response.data["reconciled_at"])

    def test_ledger_since_id(self):
        self.make_lot(10, None)
        allocator.fulfill(self.product.id, 2, "L-1")
        first = LedgerEntry.objects.order_by("id").first()

        response = self.client.get("/api/inventory/ledger/", {"since_id": first.id})

        self.assertEqual(response.status_code, 200)
        rows = response.data["results"]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["transaction_type"], LedgerEntry.TransactionType.SALE)
        self.assertEqual(rows[0]["quantity_change"], -2)


class InventoryPermissionTests(InventoryApiTestCase):
    """
    GUARANTEES:
    - anonymous users are rejected
    - cashiers can sell but cannot adjust, receive or refund
    - auditors can reconcile but cannot sell
    """

    def test_anonymous_is_rejected(self):
        client = APIClient()
        response = client.get("/api/inventory/lots/")
        self.assertIn(response.status_code, (401, 403))

    def test_cashier_capabilities(self):
        lot = self.make_lot(10, None)
        client = APIClient()
        client.force_authenticate(self.user_with_role("cashier"))

        response = client.post(
            "/api/inventory/fulfillments/",
            {"product_id": str(self.product.id), "quantity": 1, "reference": "C-1"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)

        response = client.post(
            f"/api/inventory/lots/{lot.id}/adjust/",
            {"new_quantity": 1, "reason": "oops"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

        response = client.post(
            "/api/inventory/lots/",
            {"product_id": str(self.product.id), "quantity": 5},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

        response = client.post(
            "/api/inventory/fulfillments/return/",
            {"product_id": str(self.product.id), "reference": "C-1"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.reload(lot).quantity, 9)

    def test_auditor_capabilities(self):
        self.make_lot(10, None)
        client = APIClient()
        client.force_authenticate(self.user_with_role("auditor"))

        response = client.post(f"/api/inventory/stock/{self.product.id}/reconcile/")
        self.assertEqual(response.status_code, 200)

        response = client.post(
            "/api/inventory/fulfillments/",
            {"product_id": str(self.product.id), "quantity": 1, "reference": "A-1"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)
