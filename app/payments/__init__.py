"""
Payments app: provider webhook reconciliation.

This app handles:
- Payment transactions and their status machine
- One webhook endpoint per provider (asaas, efi, mercadopago, pagseguro,
  sicredi, stripe) backed by a single reconciliation engine
- The webhook event log and manual replay of unsuccessful deliveries

Related apps:
    - orders: Buyer orders settled by transactions
    - billing: Owner invoices settled by transactions

Usage:
    from payments.providers import get_adapter
    from payments.services.reconciliation_service import ReconciliationService

    result = ReconciliationService.run(get_adapter("asaas"), webhook_event)
"""
