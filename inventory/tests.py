import uuid
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.test import APIClient

from inventory.models import InventoryCategory, InventoryItem, StockLocation, StockTransaction, Supplier, TaxRate


class InventoryTestMixin:
    def setUp(self):
        self.client = APIClient()
        self.user_model = get_user_model()
        self.manager = self.user_model.objects.create_user(
            username="stock-manager",
            email="stock-manager@example.com",
            password="pass1234",
            role="manager",
        )
        self.admin = self.user_model.objects.create_user(
            username="stock-admin",
            email="stock-admin@example.com",
            password="pass1234",
            role="admin",
        )
        self.client.force_authenticate(user=self.manager)
        self.category = InventoryCategory.objects.create(name="Spare Parts")
        self.item = self.make_item("FLT-100", quantity=10)

    def make_item(self, item_code, quantity=0, location="warehouse", **extra):
        item = InventoryItem.objects.create(
            item_code=item_code,
            item_description=f"{item_code} description",
            category=self.category,
            quantity_in_stock=quantity,
            **extra,
        )
        if quantity:
            StockLocation.objects.create(item=item, location=location, quantity=quantity)
        return item


class StockTransactionApiTests(InventoryTestMixin, TestCase):
    def post_transaction(self, transaction_type, quantity, location="warehouse", **extra):
        payload = {
            "item": str(self.item.id),
            "transaction_type": transaction_type,
            "quantity": quantity,
            "location": location,
            **extra,
        }
        return self.client.post("/api/v1/stock-transactions/", payload, format="json")

    def test_stock_in_increases_quantity(self):
        response = self.post_transaction("stockin", 5, reference=" PO-77 ")

        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(response.json()["reference"], "PO-77")
        self.assertEqual(response.json()["created_by"], str(self.manager.id))
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 15)

    def test_insufficient_stock_out_persists_nothing(self):
        response = self.post_transaction("stockout", 50)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Insufficient stock available")
        self.assertFalse(StockTransaction.objects.exists())
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)

    def test_negative_adjustment_below_zero_rejected(self):
        response = self.post_transaction("adjustment", -11)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Adjustment would result in negative inventory")

    def test_update_reverts_previous_effect_before_applying(self):
        txn_id = self.post_transaction("stockin", 5).json()["id"]

        response = self.client.patch(f"/api/v1/stock-transactions/{txn_id}/", {"quantity": 2}, format="json")

        self.assertEqual(response.status_code, 200, response.content)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 12)

        switched = self.client.patch(f"/api/v1/stock-transactions/{txn_id}/", {"transaction_type": "stockout"}, format="json")
        self.assertEqual(switched.status_code, 200)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 8)

    def test_delete_that_would_go_negative_is_rejected(self):
        stock_in_id = self.post_transaction("stockin", 5).json()["id"]
        self.post_transaction("stockout", 14)
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/v1/stock-transactions/{stock_in_id}/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot delete transaction as it would result in negative inventory")
        self.assertTrue(StockTransaction.objects.filter(pk=stock_in_id).exists())

    def test_delete_reverses_effect(self):
        stock_in_id = self.post_transaction("stockin", 5).json()["id"]
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/v1/stock-transactions/{stock_in_id}/")

        self.assertEqual(response.status_code, 204)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)

    def test_item_balance_reports_ledger_per_location(self):
        self.post_transaction("stockin", 5, location="retailstore")
        self.post_transaction("stockout", 2, location="retailstore")
        self.post_transaction("stockin", 3)

        response = self.client.get(f"/api/v1/stock-transactions/item/{self.item.id}/balance/")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["quantity_in_stock"], 16)
        self.assertEqual(
            body["location_balances"],
            [{"location": "retailstore", "balance": 3}, {"location": "warehouse", "balance": 3}],
        )
        self.assertEqual(len(body["recent_transactions"]), 3)

    def test_values_are_accepted_in_any_casing(self):
        response = self.post_transaction("StockOut", 4, location="Warehouse")

        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(response.json()["transaction_type"], "stockout")
        self.assertEqual(response.json()["location"], "warehouse")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 6)

    def test_update_rejected_when_reverting_original_goes_negative(self):
        stock_in_id = self.post_transaction("stockin", 5).json()["id"]
        self.post_transaction("stockout", 12)

        response = self.client.patch(f"/api/v1/stock-transactions/{stock_in_id}/", {"quantity": 1}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Insufficient stock available for updated transaction")
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 3)
        self.assertEqual(StockTransaction.objects.get(pk=stock_in_id).quantity, 5)

    def test_unknown_item_is_not_found(self):
        response = self.client.post(
            "/api/v1/stock-transactions/",
            {"item": str(uuid.uuid4()), "transaction_type": "stockin", "quantity": 1, "location": "warehouse"},
            format="json",
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Inventory item not found")
        self.assertFalse(StockTransaction.objects.exists())

    def test_date_filters_include_the_whole_end_day(self):
        self.post_transaction("stockin", 2)
        today = timezone.localdate().isoformat()

        response = self.client.get("/api/v1/stock-transactions/", {"start_date": today, "end_date": today})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)


class StockMovementApiTests(InventoryTestMixin, TestCase):
    def transfer(self, **payload):
        return self.client.post(f"/api/v1/stock-locations/transfer/{self.item.id}/", payload, format="json")

    def test_transfer_moves_quantity_and_writes_both_legs(self):
        response = self.transfer(from_location="warehouse", to_location="retailstore", quantity=4, reason="restock")

        self.assertEqual(response.status_code, 200, response.content)
        self.assertTrue(response.json()["transaction_ref"].startswith("Transfer-"))
        quantities = dict(StockLocation.objects.filter(item=self.item).values_list("location", "quantity"))
        self.assertEqual(quantities, {"warehouse": 6, "retailstore": 4})
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_in_stock, 10)

        legs = StockTransaction.objects.filter(item=self.item)
        self.assertEqual(sorted(legs.values_list("transaction_type", "location")), [("stockin", "retailstore"), ("stockout", "warehouse")])
        self.assertTrue(all(leg.reference.endswith(": restock") for leg in legs))

    def test_transfer_to_same_location_rejected(self):
        response = self.transfer(from_location="warehouse", to_location="warehouse", quantity=1)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Source and destination locations cannot be the same")

    def test_transfer_requires_enough_source_stock(self):
        response = self.transfer(from_location="warehouse", to_location="transit", quantity=11)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Not enough stock in source location")
        self.assertFalse(StockTransaction.objects.exists())

    def test_transfer_requires_positive_quantity(self):
        response = self.transfer(from_location="warehouse", to_location="transit", quantity=0)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "From location, to location, and positive quantity are required")

    def test_transfer_rejects_unknown_location(self):
        response = self.transfer(from_location="garage", to_location="warehouse", quantity=1)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid location")
        self.assertFalse(StockTransaction.objects.exists())

    def test_transfer_locations_accept_any_casing(self):
        response = self.transfer(from_location="Warehouse", to_location="RetailStore", quantity=2)

        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(StockLocation.objects.get(item=self.item, location="retailstore").quantity, 2)

    def test_adjustment_updates_location_and_total(self):
        response = self.client.post(
            f"/api/v1/inventory-items/{self.item.id}/stock/",
            {"quantity": -3, "location": "Warehouse", "reason": "damaged"},
            format="json",
        )

        self.assertEqual(response.status_code, 200, response.content)
        body = response.json()
        self.assertEqual(body["previous_quantity"], 10)
        self.assertEqual(body["new_quantity"], 7)
        self.assertEqual(body["total_quantity"], 7)
        txn = StockTransaction.objects.get(item=self.item)
        self.assertEqual((txn.transaction_type, txn.quantity, txn.reference), ("adjustment", -3, "damaged"))

    def test_adjustment_cannot_go_negative(self):
        response = self.client.post(
            f"/api/v1/inventory-items/{self.item.id}/stock/",
            {"quantity": -4, "location": "transit"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Adjustment would result in negative stock")

    def test_by_location_hides_empty_rows_unless_asked(self):
        empty = self.make_item("FLT-200")
        StockLocation.objects.create(item=empty, location="warehouse", quantity=0)

        default = self.client.get("/api/v1/stock-locations/location/WAREHOUSE/")
        show_all = self.client.get("/api/v1/stock-locations/location/warehouse/", {"show_all": "true"})

        self.assertEqual(default.json()["count"], 1)
        self.assertEqual(show_all.json()["count"], 2)

    def test_staff_cannot_transfer(self):
        staff = self.user_model.objects.create_user(username="stock-staff", email="stock-staff@example.com", password="pass1234")
        self.client.force_authenticate(user=staff)

        with self.assertLogs("security.authorization", level="WARNING") as captured:
            response = self.transfer(from_location="warehouse", to_location="transit", quantity=1)

        self.assertEqual(response.status_code, 403)
        self.assertTrue(any("capability=stock.transfer" in line for line in captured.output))


class InventoryCategoryApiTests(InventoryTestMixin, TestCase):
    def test_circular_parent_rejected(self):
        child = InventoryCategory.objects.create(name="Filters", parent_category=self.category)
        grandchild = InventoryCategory.objects.create(name="Oil Filters", parent_category=child)

        response = self.client.patch(
            f"/api/v1/inventory-categories/{self.category.id}/",
            {"parent_category": str(grandchild.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Circular reference detected in category hierarchy")

    def test_category_cannot_be_its_own_parent(self):
        response = self.client.patch(
            f"/api/v1/inventory-categories/{self.category.id}/",
            {"parent_category": str(self.category.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Category cannot be its own parent")

    def test_create_with_unknown_parent_is_not_found(self):
        response = self.client.post(
            "/api/v1/inventory-categories/",
            {"name": "Orphans", "parent_category": "00000000-0000-0000-0000-000000000000"},
            format="json",
        )

        self.assertEqual(response.status_code, 404)

    def test_delete_guards(self):
        InventoryCategory.objects.create(name="Filters", parent_category=self.category)
        empty = InventoryCategory.objects.create(name="Tyres")
        self.client.force_authenticate(user=self.admin)

        with_children = self.client.delete(f"/api/v1/inventory-categories/{self.category.id}/")
        self.assertEqual(with_children.status_code, 400)
        self.assertEqual(with_children.json()["message"], "Cannot delete category with subcategories")

        InventoryItem.objects.create(item_code="TYR-1", item_description="Tyre", category=empty)
        with_items = self.client.delete(f"/api/v1/inventory-categories/{empty.id}/")
        self.assertEqual(with_items.status_code, 400)
        self.assertEqual(with_items.json()["message"], "Cannot delete category with associated items")

    def test_hierarchy_nests_children_with_item_counts(self):
        InventoryCategory.objects.create(name="Filters", parent_category=self.category)

        response = self.client.get("/api/v1/inventory-categories/hierarchy/")

        self.assertEqual(response.status_code, 200)
        tree = response.json()
        self.assertEqual([node["name"] for node in tree], ["Spare Parts"])
        self.assertEqual(tree[0]["item_count"], 1)
        self.assertEqual([child["name"] for child in tree[0]["children"]], ["Filters"])


class TaxRateApiTests(InventoryTestMixin, TestCase):
    def test_calculate_rounds_to_cents(self):
        rate = TaxRate.objects.create(name="VAT", rate=Decimal("12.5"), applies_to="sale")

        response = self.client.post(
            "/api/v1/tax-rates/calculate/",
            {"tax_rate_id": str(rate.id), "value": "99.99", "type": "sale"},
            format="json",
        )

        self.assertEqual(response.status_code, 200, response.content)
        body = response.json()
        self.assertEqual(Decimal(str(body["tax_amount"])), Decimal("12.50"))
        self.assertEqual(Decimal(str(body["total_with_tax"])), Decimal("112.49"))

    def test_calculate_rejects_inapplicable_rate(self):
        rate = TaxRate.objects.create(name="Import Duty", rate=Decimal("5"), applies_to="purchase")

        response = self.client.post(
            "/api/v1/tax-rates/calculate/",
            {"tax_rate_id": str(rate.id), "value": "10", "type": "sale"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Tax rate not applicable for sale")

    def test_duplicate_name_rejected(self):
        TaxRate.objects.create(name="VAT", rate=Decimal("15"))

        response = self.client.post("/api/v1/tax-rates/", {"name": "vat", "rate": "12.5"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"]["name"], ["Tax rate with this name already exists"])

    def test_delete_blocked_while_items_use_rate(self):
        rate = TaxRate.objects.create(name="VAT", rate=Decimal("15"))
        self.item.tax_rate = rate
        self.item.save()
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/v1/tax-rates/{rate.id}/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot delete tax rate. It is being used by 1 inventory items.")

    def test_bulk_create_rejects_duplicates_in_request(self):
        response = self.client.post(
            "/api/v1/tax-rates/bulk/",
            [{"name": "VAT", "rate": "15"}, {"name": "vat", "rate": "12"}],
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Duplicate tax rate name in request: vat")
        self.assertFalse(TaxRate.objects.exists())

        created = self.client.post(
            "/api/v1/tax-rates/bulk/",
            {"tax_rates": [{"name": "VAT", "rate": "15"}, {"name": "NHIL", "rate": "2.5"}]},
            format="json",
        )
        self.assertEqual(created.status_code, 201, created.content)
        self.assertEqual(TaxRate.objects.count(), 2)


class InventoryItemApiTests(InventoryTestMixin, TestCase):
    def test_create_with_initial_stock_seeds_location_and_ledger(self):
        response = self.client.post(
            "/api/v1/inventory-items/",
            {
                "item_code": "brk-pad-01",
                "item_description": "Brake pads",
                "category": str(self.category.id),
                "initial_stock": 8,
                "initial_stock_location": "retailstore",
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(response.json()["item_code"], "BRK-PAD-01")
        item = InventoryItem.objects.get(item_code="BRK-PAD-01")
        self.assertEqual(item.quantity_in_stock, 8)
        self.assertEqual(item.stock_locations.get().quantity, 8)
        txn = item.transactions.get()
        self.assertEqual((txn.transaction_type, txn.reference), ("stockin", "Initial stock"))

    def test_special_price_end_date_derived_from_period(self):
        response = self.client.post(
            "/api/v1/inventory-items/",
            {
                "item_code": "WPR-1",
                "item_description": "Wiper blade",
                "category": str(self.category.id),
                "special_price": "4.50",
                "special_price_start_date": "2026-01-01T00:00:00Z",
                "special_price_duration": 2,
                "special_price_period": "weeks",
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(
            parse_datetime(response.json()["special_price_end_date"]),
            datetime(2026, 1, 15, tzinfo=dt_timezone.utc),
        )

    def test_delete_blocked_while_stock_remains(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/v1/inventory-items/{self.item.id}/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cannot delete item with existing stock")
        self.assertTrue(InventoryItem.objects.filter(pk=self.item.pk).exists())

    def test_delete_empty_item_removes_ledger(self):
        empty = self.make_item("FLT-300")
        StockTransaction.objects.create(item=empty, transaction_type="stockin", quantity=0, location="warehouse")
        self.client.force_authenticate(user=self.admin)

        response = self.client.delete(f"/api/v1/inventory-items/{empty.id}/")

        self.assertEqual(response.status_code, 204)
        self.assertFalse(StockTransaction.objects.filter(item_id=empty.id).exists())

    def test_low_stock_lists_items_at_or_below_reorder_level(self):
        self.make_item("FLT-400", quantity=2, reorder_level=5)
        self.make_item("FLT-500", quantity=20, reorder_level=5)

        response = self.client.get("/api/v1/inventory-items/low-stock/")

        self.assertEqual([row["item_code"] for row in response.json()["results"]], ["FLT-400"])


class SupplierApiTests(InventoryTestMixin, TestCase):
    def test_status_endpoint_lowercases_and_validates(self):
        supplier = Supplier.objects.create(name="Accra Auto Parts")

        bad = self.client.patch(f"/api/v1/suppliers/{supplier.id}/status/", {"status": "closed"}, format="json")
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(bad.json()["errors"]["status"], ["Invalid status"])

        ok = self.client.patch(f"/api/v1/suppliers/{supplier.id}/status/", {"status": "INACTIVE"}, format="json")
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["status"], "inactive")

    def test_detail_lists_supplied_items(self):
        supplier = Supplier.objects.create(name="Accra Auto Parts", email="sales@accra-auto.example")
        self.item.supplier_links.create(supplier=supplier, supplier_item_code="AAP-9", lead_time_days=3)

        response = self.client.get(f"/api/v1/suppliers/{supplier.id}/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["supplied_items"][0]["item_code"], "FLT-100")
