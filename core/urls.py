from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from core.views import (
    EmailOrUsernameTokenObtainPairView,
    LogoutView,
    ProfileView,
    UserViewSet,
    healthz,
    readyz,
)

router = DefaultRouter()
router.register(r"admin/users", UserViewSet, basename="admin-user")

urlpatterns = router.urls + [
    path("auth/login/", EmailOrUsernameTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("auth/me/", ProfileView.as_view(), name="profile"),
    path("healthz/", healthz, name="healthz"),
    path("readyz/", readyz, name="readyz"),
]
