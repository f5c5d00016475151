from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from inventory.models import InventoryCategory, InventoryItem, StockTransaction
from sales.models import SalesOrder


class SalesOrderTestMixin:
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user_model = get_user_model()
        self.manager = self.user_model.objects.create_user(
            username="sales-manager",
            email="manager@example.com",
            password="pass1234",
            role="manager",
        )
        self.admin = self.user_model.objects.create_user(
            username="sales-admin",
            email="admin@example.com",
            password="pass1234",
            role="admin",
        )
        self.category = InventoryCategory.objects.create(name="Spare Parts")
        self.item = InventoryItem.objects.create(
            item_code="OIL-5W30",
            item_description="Engine oil 5W30",
            category=self.category,
            retail_price=Decimal("10.00"),
            quantity_in_stock=10,
        )
        self.client.force_authenticate(user=self.manager)

    def order_payload(self, quantity=4, unit_price="10.00", subtotal=None, tax_amount="4.00", total_amount=None, item=None, **extra):
        line_total = Decimal(quantity) * Decimal(unit_price)
        subtotal = Decimal(subtotal) if subtotal is not None else line_total
        total_amount = Decimal(total_amount) if total_amount is not None else subtotal + Decimal(tax_amount)
        payload = {
            "customer": {"name": "Kwame Mensah", "email": "Kwame@Example.com", "phone": "0244000000"},
            "items": [{"item": str((item or self.item).id), "quantity": quantity, "unit_price": unit_price}],
            "subtotal": str(subtotal),
            "tax_amount": tax_amount,
            "total_amount": str(total_amount),
            "payment_method": "cash",
        }
        payload.update(extra)
        return payload

    def create_order(self, **kwargs):
        response = self.client.post("/api/v1/sales-orders/", self.order_payload(**kwargs), format="json")
        self.assertEqual(response.status_code, 201, response.content)
        return response.json()


class SalesOrderCreateTests(SalesOrderTestMixin, TestCase):
    def test_create_order_decrements_stock_and_logs_stockout(self):
        payload = self.create_order()

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 6)
        self.assertEqual(Decimal(payload["subtotal"]), Decimal("40.00"))
        self.assertEqual(Decimal(payload["total_amount"]), Decimal("44.00"))
        self.assertEqual(payload["status"], "pending")
        self.assertEqual(payload["payment_status"], "unpaid")
        self.assertEqual(payload["customer"]["email"], "kwame@example.com")
        self.assertEqual(len(payload["items"]), 1)
        self.assertEqual(Decimal(payload["items"][0]["total_price"]), Decimal("40.00"))

        expected_prefix = timezone.now().strftime("SO%y%m")
        self.assertEqual(payload["order_number"], f"{expected_prefix}0001")

        transactions = StockTransaction.objects.filter(item=self.item)
        self.assertEqual(transactions.count(), 1)
        txn = transactions.get()
        self.assertEqual(txn.transaction_type, StockTransaction.TransactionType.STOCK_OUT)
        self.assertEqual(txn.quantity, 4)
        self.assertEqual(txn.location, "retailstore")
        self.assertEqual(txn.reference, f"Sales Order: {payload['order_number']}")
        self.assertEqual(txn.created_by, self.manager)

    def test_order_numbers_increase_within_month(self):
        first = self.create_order(quantity=1)
        second = self.create_order(quantity=1)

        self.assertEqual(int(second["order_number"][-4:]), int(first["order_number"][-4:]) + 1)

    @override_settings(SALES_ORDER_DEFAULT_LOCATION="warehouse")
    def test_ledger_location_follows_setting(self):
        self.create_order(quantity=1)

        self.assertEqual(StockTransaction.objects.get(item=self.item).location, "warehouse")

    def test_insufficient_stock_is_rejected_without_writes(self):
        response = self.client.post("/api/v1/sales-orders/", self.order_payload(quantity=11), format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "business_rule_violation")
        self.assertEqual(
            response.json()["message"],
            "Insufficient stock for item OIL-5W30. Available: 10, Requested: 11",
        )
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)
        self.assertFalse(SalesOrder.objects.exists())

    def test_repeated_item_lines_share_available_stock(self):
        payload = self.order_payload(quantity=6)
        payload["items"].append({"item": str(self.item.id), "quantity": 6, "unit_price": "10.00"})
        payload["subtotal"] = "120.00"
        payload["total_amount"] = "124.00"

        response = self.client.post("/api/v1/sales-orders/", payload, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["message"],
            "Insufficient stock for item OIL-5W30. Available: 4, Requested: 6",
        )
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)

    def test_subtotal_mismatch_rolls_back(self):
        response = self.client.post(
            "/api/v1/sales-orders/",
            self.order_payload(subtotal="39.50", total_amount="43.50"),
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Subtotal calculation mismatch. Calculated: 40.00, Provided: 39.50")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)
        self.assertFalse(SalesOrder.objects.exists())
        self.assertFalse(StockTransaction.objects.exists())

    def test_total_mismatch_rolls_back(self):
        response = self.client.post(
            "/api/v1/sales-orders/",
            self.order_payload(total_amount="50.00"),
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Total amount calculation mismatch. Calculated: 44.00, Provided: 50.00")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)
        self.assertFalse(StockTransaction.objects.exists())

    def test_difference_within_a_cent_is_accepted(self):
        payload = self.create_order(subtotal="40.01", total_amount="44.01")

        self.assertEqual(Decimal(payload["subtotal"]), Decimal("40.00"))
        self.assertEqual(Decimal(payload["total_amount"]), Decimal("44.00"))

    def test_unknown_item_returns_404(self):
        missing_id = "00000000-0000-0000-0000-000000000000"
        payload = self.order_payload()
        payload["items"][0]["item"] = missing_id

        response = self.client.post("/api/v1/sales-orders/", payload, format="json")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], f"Inventory item with ID {missing_id} not found")

    def test_unsaleable_item_is_rejected(self):
        self.item.saleable = False
        self.item.save()

        response = self.client.post("/api/v1/sales-orders/", self.order_payload(), format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Item OIL-5W30 is not available for sale")

    def test_serialized_item_requires_matching_serial_numbers(self):
        self.item.serialized = True
        self.item.save()
        payload = self.order_payload(quantity=2)
        payload["items"][0]["serial_numbers"] = ["SN-1"]

        response = self.client.post("/api/v1/sales-orders/", payload, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["message"],
            "Serial numbers count must match quantity for serialized item OIL-5W30",
        )

        payload["items"][0]["serial_numbers"] = ["SN-1", "SN-2"]
        response = self.client.post("/api/v1/sales-orders/", payload, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["items"][0]["serial_numbers"], ["SN-1", "SN-2"])

    def test_order_requires_at_least_one_line(self):
        payload = self.order_payload()
        payload["items"] = []

        response = self.client.post("/api/v1/sales-orders/", payload, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "validation_error")
        self.assertIn("items", response.json()["errors"])


class SalesOrderLifecycleTests(SalesOrderTestMixin, TestCase):
    def test_cancelling_restores_stock_and_logs_returns(self):
        order = self.create_order()

        response = self.client.patch(f"/api/v1/sales-orders/{order['id']}/", {"status": "cancelled"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "cancelled")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)
        returns = StockTransaction.objects.filter(transaction_type=StockTransaction.TransactionType.RETURN)
        self.assertEqual(returns.count(), 1)
        self.assertEqual(returns.get().quantity, 4)
        self.assertEqual(returns.get().reference, f"Cancelled Sales Order: {order['order_number']}")

    def test_only_workflow_fields_are_updated(self):
        order = self.create_order()

        response = self.client.patch(
            f"/api/v1/sales-orders/{order['id']}/",
            {"payment_status": "paid", "status": "processing", "subtotal": "1.00"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        stored = SalesOrder.objects.get(pk=order["id"])
        self.assertEqual(stored.payment_status, "paid")
        self.assertEqual(stored.status, "processing")
        self.assertEqual(stored.subtotal, Decimal("40.00"))

    def test_terminal_orders_reject_updates(self):
        order = self.create_order()
        SalesOrder.objects.filter(pk=order["id"]).update(status=SalesOrder.Status.DELIVERED)

        response = self.client.patch(f"/api/v1/sales-orders/{order['id']}/", {"status": "cancelled"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot update a sales order with status: delivered")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 6)

    def test_deleting_non_pending_order_is_rejected(self):
        order = self.create_order()
        self.client.patch(f"/api/v1/sales-orders/{order['id']}/", {"status": "processing"}, format="json")
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/v1/sales-orders/{order['id']}/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Only pending orders can be deleted. Current status: processing")
        self.assertTrue(SalesOrder.objects.filter(pk=order["id"]).exists())

    def test_deleting_pending_order_restores_stock(self):
        order = self.create_order()
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/v1/sales-orders/{order['id']}/")

        self.assertEqual(response.status_code, 204)
        self.assertFalse(SalesOrder.objects.exists())
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)
        self.assertTrue(
            StockTransaction.objects.filter(reference=f"Deleted Sales Order: {order['order_number']}").exists()
        )

    def test_staff_cannot_delete_orders(self):
        order = self.create_order()
        staff = self.user_model.objects.create_user(username="sales-staff", email="staff@example.com", password="pass1234")
        self.client.force_authenticate(user=staff)

        with self.assertLogs("security.authorization", level="WARNING") as captured:
            response = self.client.delete(f"/api/v1/sales-orders/{order['id']}/")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "permission_denied")
        self.assertTrue(any("capability=sales.delete" in line for line in captured.output))

    def test_list_filters(self):
        self.create_order(quantity=1, tax_amount="0.00")
        self.create_order(quantity=5, tax_amount="0.00")

        response = self.client.get("/api/v1/sales-orders/", {"min_amount": "20"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)
        self.assertEqual(Decimal(response.json()["results"][0]["total_amount"]), Decimal("50.00"))

        response = self.client.get("/api/v1/sales-orders/", {"customer_name": "kwame", "status": "pending"})
        self.assertEqual(response.json()["count"], 2)

        response = self.client.get("/api/v1/sales-orders/", {"min_amount": "abc"})
        self.assertEqual(response.status_code, 400)

    def test_date_filters_include_the_whole_end_day(self):
        self.create_order(quantity=1, tax_amount="0.00")
        today = timezone.localdate().isoformat()
        tomorrow = (timezone.localdate() + timedelta(days=1)).isoformat()

        same_day = self.client.get("/api/v1/sales-orders/", {"start_date": today, "end_date": today})
        later = self.client.get("/api/v1/sales-orders/", {"start_date": tomorrow})

        self.assertEqual(same_day.status_code, 200)
        self.assertEqual(same_day.json()["count"], 1)
        self.assertEqual(later.json()["count"], 0)

    def test_invalid_calendar_date_is_rejected(self):
        response = self.client.get("/api/v1/sales-orders/", {"end_date": "2026-13-40"})

        self.assertEqual(response.status_code, 400)
        self.assertIn("end_date", response.json()["errors"])

    def test_workflow_values_accept_any_casing(self):
        order = self.create_order(payment_method="CreditCard")
        self.assertEqual(order["payment_method"], "creditcard")

        response = self.client.patch(
            f"/api/v1/sales-orders/{order['id']}/",
            {"status": "Cancelled", "payment_status": "Paid"},
            format="json",
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.json()["status"], "cancelled")
        self.assertEqual(response.json()["payment_status"], "paid")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)


class SalesReportTests(SalesOrderTestMixin, TestCase):
    def test_summary_excludes_cancelled_orders_from_best_sellers(self):
        self.create_order(quantity=2, tax_amount="0.00")
        cancelled = self.create_order(quantity=3, tax_amount="0.00")
        self.client.patch(f"/api/v1/sales-orders/{cancelled['id']}/", {"status": "cancelled"}, format="json")

        response = self.client.get("/api/v1/sales-orders/summary/")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total_sales"], 2)
        statuses = {row["status"]: row["count"] for row in payload["by_status"]}
        self.assertEqual(statuses, {"cancelled": 1, "pending": 1})
        self.assertEqual(len(payload["top_selling_items"]), 1)
        self.assertEqual(payload["top_selling_items"][0]["item_code"], "OIL-5W30")
        self.assertEqual(payload["top_selling_items"][0]["total_quantity"], 2)
        self.assertEqual(len(payload["sales_trend"]), 1)
        self.assertEqual(payload["sales_trend"][0]["period"], timezone.localdate().isoformat())

    def test_summary_groups_long_ranges_by_month(self):
        self.create_order(quantity=1, tax_amount="0.00")
        today = timezone.localdate()

        response = self.client.get(
            "/api/v1/sales-orders/summary/",
            {"start_date": (today.replace(day=1) - timedelta(days=90)).isoformat(), "end_date": today.isoformat()},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["sales_trend"][0]["period"], timezone.localdate().strftime("%Y-%m"))

    def test_customer_history_requires_name_or_email(self):
        response = self.client.get("/api/v1/sales-orders/customer-history/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Please provide either customer name or email")

    def test_customer_history_aggregates_items(self):
        self.create_order(quantity=1, tax_amount="0.00")
        self.create_order(quantity=2, tax_amount="0.00")

        response = self.client.get("/api/v1/sales-orders/customer-history/", {"customer_email": "kwame@example.com"})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["customer"]["name"], "Kwame Mensah")
        self.assertEqual(payload["total_orders"], 2)
        self.assertEqual(Decimal(str(payload["total_spent"])), Decimal("30.00"))
        self.assertEqual(len(payload["orders"]), 2)
        self.assertEqual(payload["frequently_purchased_items"][0]["total_quantity"], 3)
        self.assertEqual(payload["frequently_purchased_items"][0]["order_count"], 2)

    def test_summary_for_a_single_day_includes_todays_orders(self):
        self.create_order(quantity=2, tax_amount="0.00")
        today = timezone.localdate().isoformat()

        response = self.client.get("/api/v1/sales-orders/summary/", {"start_date": today, "end_date": today})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["total_sales"], 1)
        self.assertEqual(len(payload["sales_trend"]), 1)
        self.assertEqual(payload["sales_trend"][0]["period"], today)

    def test_customer_history_matches_email_as_submitted(self):
        self.create_order(quantity=1, tax_amount="0.00")

        response = self.client.get("/api/v1/sales-orders/customer-history/", {"customer_email": "Kwame@Example.com"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_orders"], 1)
        self.assertEqual(response.json()["customer"]["email"], "kwame@example.com")
