from rest_framework.routers import DefaultRouter

from fleet.views import InsuranceViewSet, RoadWorthViewSet, VehicleDriverLogViewSet, VehicleViewSet

router = DefaultRouter()
router.register(r"vehicles", VehicleViewSet, basename="vehicle")
router.register(r"insurance", InsuranceViewSet, basename="insurance")
router.register(r"road-worth", RoadWorthViewSet, basename="road-worth")
router.register(r"vehicle-driver-logs", VehicleDriverLogViewSet, basename="vehicle-driver-log")

urlpatterns = router.urls
