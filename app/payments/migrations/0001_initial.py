import decimal
import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


PROVIDER_CHOICES = [
    ("asaas", "Asaas"),
    ("efi", "Efí"),
    ("mercadopago", "Mercado Pago"),
    ("pagseguro", "PagSeguro"),
    ("sicredi", "Sicredi"),
    ("stripe", "Stripe"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("billing", "0001_initial"),
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="GatewaySecret",
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
                ("provider", models.CharField(choices=PROVIDER_CHOICES, max_length=20)),
                ("key", models.CharField(max_length=64)),
                ("value", models.TextField()),
            ],
            options={
                "verbose_name": "Gateway Secret",
                "verbose_name_plural": "Gateway Secrets",
                "ordering": ["provider", "key"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("provider", "key"),
                        name="unique_gateway_secret_key",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
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
                    "provider",
                    models.CharField(
                        choices=PROVIDER_CHOICES, db_index=True, max_length=20
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Provider event type (e.g., 'PAYMENT_RECEIVED', 'charge.refunded')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(
                        default=dict,
                        help_text="Request body as received from the provider",
                    ),
                ),
                (
                    "outcome",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("reconciled", "Reconciled"),
                            ("duplicate", "Duplicate"),
                            ("ignored", "Ignored"),
                            ("not_found", "Transaction Not Found"),
                            ("rejected", "Rejected"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="received",
                        max_length=20,
                    ),
                ),
                ("success", models.BooleanField(db_index=True, default=False)),
                ("error", models.TextField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["provider", "event_type", "success"],
                        name="webhook_provider_type_ok_idx",
                    ),
                    models.Index(
                        fields=["outcome", "created_at"],
                        name="webhook_outcome_created_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentTransaction",
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
                    "provider",
                    models.CharField(
                        choices=PROVIDER_CHOICES, db_index=True, max_length=20
                    ),
                ),
                (
                    "method",
                    models.CharField(
                        choices=[("pix", "PIX"), ("card", "Card"), ("boleto", "Boleto")],
                        default="pix",
                        max_length=20,
                    ),
                ),
                (
                    "provider_payment_id",
                    models.CharField(
                        help_text="Provider's payment identifier (payment id, charge id, pix txid)",
                        max_length=255,
                    ),
                ),
                (
                    "provider_reference",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Our reference as echoed back by the provider",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2, default=decimal.Decimal("0"), max_digits=12
                    ),
                ),
                ("currency", models.CharField(default="BRL", max_length=3)),
                (
                    "fees",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Provider fees reported on confirmation",
                        max_digits=12,
                        null=True,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("canceled", "Canceled"),
                            ("refunded", "Refunded"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current payment status (managed by FSM)",
                        max_length=50,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "raw_payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Provider payload stored verbatim",
                    ),
                ),
                (
                    "invoice",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="billing.ownerinvoice",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Transaction",
                "verbose_name_plural": "Payment Transactions",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("provider", "provider_payment_id"),
                        name="unique_provider_payment_id",
                    )
                ],
            },
        ),
    ]
