import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="OwnerSubscription",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("plan_id", models.UUIDField(blank=True, null=True)),
                (
                    "billing_cycle",
                    models.CharField(
                        choices=[
                            ("monthly", "Monthly"),
                            ("semiannual", "Semiannual"),
                            ("annual", "Annual"),
                        ],
                        default="monthly",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("trialing", "Trialing"),
                            ("active", "Active"),
                            ("past_due", "Past Due"),
                            ("suspended", "Suspended"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="trialing",
                        help_text="Current state of the subscription (managed by FSM)",
                        max_length=50,
                    ),
                ),
                ("current_period_start", models.DateTimeField(blank=True, null=True)),
                (
                    "current_period_end",
                    models.DateTimeField(blank=True, db_index=True, null=True),
                ),
                ("auto_renew", models.BooleanField(default=True)),
                ("cancel_at_period_end", models.BooleanField(default=False)),
                ("gateway", models.CharField(blank=True, default="", max_length=20)),
            ],
            options={
                "verbose_name": "Owner Subscription",
                "verbose_name_plural": "Owner Subscriptions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "current_period_end"],
                        name="ownersub_status_period_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="OwnerInvoice",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata",
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(decimal_places=2, default=0, max_digits=12),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("canceled", "Canceled"),
                            ("overdue", "Overdue"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=50,
                    ),
                ),
                ("gateway", models.CharField(blank=True, default="", max_length=20)),
                (
                    "gateway_charge_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Charge identifier at the provider (pix txid, payment id)",
                        max_length=255,
                        null=True,
                    ),
                ),
                ("due_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "subscription",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="invoices",
                        to="billing.ownersubscription",
                    ),
                ),
            ],
            options={
                "verbose_name": "Owner Invoice",
                "verbose_name_plural": "Owner Invoices",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OwnerAuditLog",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("PAYMENT_RECEIVED", "Payment Received"),
                            ("SUBSCRIPTION_PAST_DUE", "Subscription Past Due"),
                            (
                                "SUBSCRIPTION_SUSPENDED_AUTO",
                                "Subscription Suspended Automatically",
                            ),
                        ],
                        db_index=True,
                        max_length=64,
                    ),
                ),
                (
                    "actor_type",
                    models.CharField(
                        choices=[
                            ("system", "System"),
                            ("webhook", "Webhook"),
                            ("owner", "Owner"),
                        ],
                        default="system",
                        max_length=20,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("ip", models.GenericIPAddressField(blank=True, null=True)),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True),
                ),
            ],
            options={
                "verbose_name": "Owner Audit Log",
                "verbose_name_plural": "Owner Audit Logs",
                "ordering": ["-created_at"],
            },
        ),
    ]
