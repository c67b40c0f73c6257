"""URL routing for the finance domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import PaymentIntentView, PaymentViewSet, StripeWebhookView

app_name = "finances"

router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payment")

urlpatterns = [
    path("payments/intent/", PaymentIntentView.as_view(), name="payment-intent"),
    path("payments/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("", include(router.urls)),
]
