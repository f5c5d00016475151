from rest_framework.routers import DefaultRouter

from inventory.views import (
    InventoryCategoryViewSet,
    InventoryItemViewSet,
    StockLocationViewSet,
    StockTransactionViewSet,
    SupplierViewSet,
    TaxRateViewSet,
)

router = DefaultRouter()
router.register(r"inventory-categories", InventoryCategoryViewSet, basename="inventory-category")
router.register(r"inventory-items", InventoryItemViewSet, basename="inventory-item")
router.register(r"suppliers", SupplierViewSet, basename="supplier")
router.register(r"tax-rates", TaxRateViewSet, basename="tax-rate")
router.register(r"stock-transactions", StockTransactionViewSet, basename="stock-transaction")
router.register(r"stock-locations", StockLocationViewSet, basename="stock-location")

urlpatterns = router.urls
