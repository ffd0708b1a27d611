"""Initial home-delivery schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18

Areas, subscriptions and change requests, routes and schedules, billing,
payments and reminders, deliverer commission payouts.
"""
from alembic import op
import sqlalchemy as sa

revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name)


def _base_columns():
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _fk(column, target, ondelete, nullable=False, **kwargs):
    return sa.Column(column, sa.Uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable, **kwargs)


def _area_fk():
    return _fk("area_id", "areas.id", "RESTRICT", nullable=True)


def _link_table(name, left, left_target, right, right_target):
    op.create_table(
        name,
        sa.Column(left, sa.Uuid(), sa.ForeignKey(left_target, ondelete="CASCADE"), primary_key=True),
        sa.Column(right, sa.Uuid(), sa.ForeignKey(right_target, ondelete="CASCADE"), primary_key=True),
    )


def upgrade() -> None:
    # Users, areas, addresses, publications
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("username", sa.String(150), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", _enum("user_role", "Manager", "Deliverer", "Customer"), nullable=False),
        sa.Column("notify_email", sa.Boolean(), nullable=False),
        sa.Column("notify_sms", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "areas",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("state", sa.String(255), nullable=False),
        sa.Column("postal_codes", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "publications",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("language", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "publication_type",
            _enum("publication_type", "Daily", "Weekly", "Monthly", "Quarterly"),
            nullable=False,
        ),
        sa.Column("publication_days", sa.JSON(), nullable=False),
        _fk("manager_id", "users.id", "SET NULL", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "addresses",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE"),
        _area_fk(),
        sa.Column("street_address", sa.String(500), nullable=False),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("state", sa.String(255), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=False),
        sa.Column("latitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("longitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("delivery_instructions", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_addresses_user_id", "addresses", ["user_id"])
    op.create_index("ix_addresses_area_id", "addresses", ["area_id"])

    _link_table("area_managers", "area_id", "areas.id", "user_id", "users.id")
    _link_table("area_customers", "area_id", "areas.id", "user_id", "users.id")
    _link_table("area_publications", "area_id", "areas.id", "publication_id", "publications.id")

    # Delivery personnel
    op.create_table(
        "delivery_personnel",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE", unique=True),
        _fk("manager_id", "users.id", "SET NULL", nullable=True),
        sa.Column("joining_date", sa.Date(), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("account_name", sa.String(255), nullable=True),
        sa.Column("account_number", sa.String(64), nullable=True),
        sa.Column("bank_name", sa.String(255), nullable=True),
        sa.Column("ifsc_code", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    _link_table("personnel_areas", "personnel_id", "delivery_personnel.id", "area_id", "areas.id")

    # Subscriptions
    op.create_table(
        "subscriptions",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE"),
        _fk("publication_id", "publications.id", "RESTRICT"),
        _fk("address_id", "addresses.id", "RESTRICT", nullable=True),
        _fk("deliverer_id", "users.id", "SET NULL", nullable=True),
        _area_fk(),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column(
            "status",
            _enum("subscription_status", "Pending", "Active", "Paused", "Cancelled", "Suspended"),
            nullable=False,
        ),
        sa.Column("placement", sa.String(100), nullable=False),
        sa.Column("additional_instructions", sa.Text(), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_subscriptions_quantity_positive"),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_index("ix_subscriptions_area_id", "subscriptions", ["area_id"])
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    op.create_table(
        "subscription_change_requests",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column("request_type", _enum("change_request_type", "New", "Update", "Cancel"), nullable=False),
        _fk("subscription_id", "subscriptions.id", "CASCADE", nullable=True),
        _fk("publication_id", "publications.id", "RESTRICT", nullable=True),
        sa.Column("new_quantity", sa.Integer(), nullable=True),
        _fk("new_address_id", "addresses.id", "SET NULL", nullable=True),
        sa.Column("placement", sa.String(100), nullable=True),
        sa.Column("additional_instructions", sa.Text(), nullable=True),
        sa.Column(
            "status",
            _enum("change_request_status", "Pending", "Approved", "Rejected"),
            nullable=False,
        ),
        sa.Column("request_date", sa.DateTime(), nullable=False),
        sa.Column("effective_date", sa.DateTime(), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        _fk("processed_by", "users.id", "SET NULL", nullable=True),
        sa.Column("processed_date", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_subscription_change_requests_subscription_id", "subscription_change_requests", ["subscription_id"])
    op.create_index("ix_subscription_change_requests_status", "subscription_change_requests", ["status"])

    op.create_table(
        "subscription_pauses",
        *_base_columns(),
        _fk("subscription_id", "subscriptions.id", "CASCADE"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
    )

    op.create_table(
        "customer_activities",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column(
            "activity_type",
            _enum(
                "customer_activity_type",
                "New Subscription", "Cancellation", "Modification",
                "Pause Request", "Payment", "Address Update",
            ),
            nullable=False,
        ),
        sa.Column("details", sa.Text(), nullable=True),
    )

    # Routes and schedules
    op.create_table(
        "delivery_routes",
        *_base_columns(),
        _fk("personnel_id", "delivery_personnel.id", "CASCADE"),
        _area_fk(),
        sa.Column("route_name", sa.String(255), nullable=False),
        sa.Column("route_description", sa.Text(), nullable=True),
        sa.Column(
            "optimization_criteria",
            _enum("route_optimization", "Distance", "Time", "Custom"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "route_addresses",
        *_base_columns(),
        _fk("route_id", "delivery_routes.id", "CASCADE"),
        _fk("address_id", "addresses.id", "CASCADE"),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.UniqueConstraint("route_id", "sequence_number", name="uq_route_addresses_route_sequence"),
    )

    op.create_table(
        "delivery_schedules",
        *_base_columns(),
        _fk("personnel_id", "delivery_personnel.id", "CASCADE"),
        _fk("route_id", "delivery_routes.id", "SET NULL", nullable=True),
        _area_fk(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", _enum("schedule_status", "Pending", "In Progress", "Completed"), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=True),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("weather_conditions", sa.String(255), nullable=True),
        sa.UniqueConstraint("personnel_id", "date", name="uq_delivery_schedules_personnel_date"),
    )
    op.create_index("ix_delivery_schedules_date", "delivery_schedules", ["date"])

    op.create_table(
        "delivery_items",
        *_base_columns(),
        _fk("schedule_id", "delivery_schedules.id", "CASCADE"),
        _fk("subscription_id", "subscriptions.id", "CASCADE"),
        _fk("address_id", "addresses.id", "RESTRICT"),
        _fk("publication_id", "publications.id", "RESTRICT"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=True),
        sa.Column(
            "status",
            _enum("delivery_item_status", "Pending", "Delivered", "Failed", "Skipped"),
            nullable=False,
        ),
        sa.Column("delivery_notes", sa.Text(), nullable=True),
        sa.Column("delivery_time", sa.DateTime(), nullable=True),
        sa.Column("photo_proof", sa.String(500), nullable=True),
        sa.UniqueConstraint("schedule_id", "subscription_id", name="uq_delivery_items_schedule_subscription"),
    )
    op.create_index("ix_delivery_items_status", "delivery_items", ["status"])
    op.create_index("ix_delivery_items_delivery_time", "delivery_items", ["delivery_time"])

    # Billing
    op.create_table(
        "bills",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE"),
        _area_fk(),
        sa.Column("bill_number", sa.String(50), nullable=False, unique=True),
        sa.Column("bill_date", sa.Date(), nullable=False),
        sa.Column("bill_month", sa.Integer(), nullable=False),
        sa.Column("bill_year", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("outstanding_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            _enum("bill_status", "Unpaid", "Partially Paid", "Paid", "Overdue"),
            nullable=False,
        ),
        sa.UniqueConstraint("user_id", "area_id", "bill_month", "bill_year", name="uq_bills_customer_area_period"),
        sa.CheckConstraint("outstanding_amount >= 0", name="ck_bills_outstanding_non_negative"),
        sa.CheckConstraint("outstanding_amount <= total_amount", name="ck_bills_outstanding_within_total"),
    )
    op.create_index("ix_bills_status", "bills", ["status"])
    op.create_index("ix_bills_due_date", "bills", ["due_date"])

    op.create_table(
        "bill_items",
        *_base_columns(),
        _fk("bill_id", "bills.id", "CASCADE"),
        _fk("subscription_id", "subscriptions.id", "SET NULL", nullable=True),
        _fk("publication_id", "publications.id", "RESTRICT"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("period_from", sa.Date(), nullable=False),
        sa.Column("period_to", sa.Date(), nullable=False),
    )

    op.create_table(
        "payments",
        *_base_columns(),
        _fk("bill_id", "bills.id", "CASCADE"),
        _fk("user_id", "users.id", "CASCADE"),
        _fk("received_by", "users.id", "SET NULL", nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "payment_method",
            _enum("payment_method", "Cash", "Cheque", "Online", "UPI", "Card"),
            nullable=False,
        ),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column(
            "status",
            _enum("payment_status", "Pending", "Completed", "Failed", "Refunded"),
            nullable=False,
        ),
        sa.Column("receipt_number", sa.String(50), nullable=False, unique=True),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )
    op.create_index("ix_payments_bill_id", "payments", ["bill_id"])

    op.create_table(
        "payment_reminders",
        *_base_columns(),
        _fk("bill_id", "bills.id", "CASCADE"),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column("reminder_date", sa.DateTime(), nullable=False),
        sa.Column(
            "reminder_type",
            _enum("reminder_type", "First Notice", "Final Notice", "Subscription Suspension Notice"),
            nullable=False,
        ),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", _enum("reminder_status", "Pending", "Sent", "Resolved"), nullable=False),
        sa.Column("delivery_method", _enum("delivery_method", "Email", "SMS", "Print"), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_payment_reminders_bill_id", "payment_reminders", ["bill_id"])
    op.create_index("ix_payment_reminders_reminder_date", "payment_reminders", ["reminder_date"])

    op.create_table(
        "document_sequences",
        *_base_columns(),
        sa.Column("scope", sa.String(50), nullable=False, unique=True),
        sa.Column("last_value", sa.Integer(), nullable=False),
    )

    # Deliverer commission
    op.create_table(
        "deliverer_payments",
        *_base_columns(),
        _fk("personnel_id", "delivery_personnel.id", "CASCADE"),
        sa.Column("payment_month", sa.Integer(), nullable=False),
        sa.Column("payment_year", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("status", _enum("deliverer_payment_status", "Pending", "Paid"), nullable=False),
        sa.Column(
            "payment_method",
            _enum("deliverer_payment_method", "Cash", "Bank Transfer", "Cheque"),
            nullable=False,
        ),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        sa.UniqueConstraint(
            "personnel_id", "payment_month", "payment_year",
            name="uq_deliverer_payments_personnel_period",
        ),
    )

    op.create_table(
        "deliverer_payment_details",
        *_base_columns(),
        _fk("payment_id", "deliverer_payments.id", "CASCADE"),
        _fk("publication_id", "publications.id", "RESTRICT"),
        _area_fk(),
        sa.Column("delivery_count", sa.Integer(), nullable=False),
        sa.Column("publication_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(10, 2), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "deliverer_payment_details",
        "deliverer_payments",
        "document_sequences",
        "payment_reminders",
        "payments",
        "bill_items",
        "bills",
        "delivery_items",
        "delivery_schedules",
        "route_addresses",
        "delivery_routes",
        "customer_activities",
        "subscription_pauses",
        "subscription_change_requests",
        "subscriptions",
        "personnel_areas",
        "delivery_personnel",
        "area_publications",
        "area_customers",
        "area_managers",
        "addresses",
        "publications",
        "areas",
        "users",
    ):
        op.drop_table(table)

    for enum_name in (
        "deliverer_payment_method",
        "deliverer_payment_status",
        "delivery_method",
        "reminder_status",
        "reminder_type",
        "payment_status",
        "payment_method",
        "bill_status",
        "delivery_item_status",
        "schedule_status",
        "route_optimization",
        "customer_activity_type",
        "change_request_status",
        "change_request_type",
        "subscription_status",
        "publication_type",
        "user_role",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
