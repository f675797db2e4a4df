"""Workspace import integration tests.

Validates that both workspace packages (booking_shared, booking_api) are
installable and their public interfaces are accessible.
"""


class TestSharedPackageImports:
    """Tests for booking_shared public interface."""

    def test_can_import_shared_package(self):
        import booking_shared

        assert hasattr(booking_shared, "__version__")

    def test_can_import_models(self):
        """All public models should be importable from booking_shared.models."""
        from booking_shared.models import (  # noqa: F401
            # Enums
            GatewayCheckoutStatus,
            PaymentStatus,
            TransactionStatus,
            # Reservation
            BookingGroupCreate,
            Reservation,
            ReservationCreate,
            # Transaction log
            PaymentTransaction,
            # Gateway
            CheckoutSession,
            CreatedCheckout,
            GatewayCheckout,
            # Reconciliation
            PaymentStatusCheck,
            ReconciliationResult,
            StatusMapping,
            # Notification
            ConfirmationNotice,
            NotificationResult,
            # Errors
            BookingError,
            ErrorCode,
            ToolError,
        )

    def test_can_import_services(self):
        from booking_shared.services import (  # noqa: F401
            CheckoutService,
            DynamoDBService,
            NotificationService,
            PaymentAdminService,
            ReconciliationEngine,
            ReservationStore,
            SumUpService,
            TransactionLog,
        )


class TestApiPackageImports:
    """Tests for booking_api public interface."""

    def test_app_and_lambda_handler(self):
        from booking_api.main import app, handler

        assert app.title == "Event Booking Payments API"
        assert callable(handler)

    def test_routers_registered_under_api_prefix(self):
        from booking_api.main import app

        paths = {route.path for route in app.routes}

        assert "/api/webhooks/sumup" in paths
        assert "/api/payments/check-status" in paths
        assert "/api/payments/checkout" in paths
        assert "/api/admin/reservations/{reservation_id}" in paths
        assert "/api/health" in paths
