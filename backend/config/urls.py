from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LoginView, MeView, RegisterView
from bookings.api import BookingViewSet
from listings.api import ListingViewSet
from notifications.api import NotificationListView, NotificationReadView
from payments.api import BookingPaymentView
from reviews.api import CanReviewView, ReviewViewSet

router = DefaultRouter()
router.register(r"listings", ListingViewSet, basename="listing")
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"reviews", ReviewViewSet, basename="review")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path(
        "api/listings/<int:listing_id>/can-review/",
        CanReviewView.as_view(),
        name="listing-can-review",
    ),
    path(
        "api/payments/bookings/<int:booking_id>/",
        BookingPaymentView.as_view(),
        name="booking-payment",
    ),
    path("api/notifications/", NotificationListView.as_view(), name="notification-list"),
    path(
        "api/notifications/<int:notification_id>/read/",
        NotificationReadView.as_view(),
        name="notification-read",
    ),
    path("api/", include(router.urls)),
]
