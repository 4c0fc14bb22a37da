"""
Payment services for webhook reconciliation.

This package provides:
- reconciliation_service: ReconciliationService, TransactionLocator and
  StateApplier, the engine shared by every provider webhook
- audit: AuditRecorder, used by reconciliation and the billing sweep

Submodules are imported directly; billing.services depends on audit and
reconciliation_service depends on billing.services.

Usage:
    from payments.services.reconciliation_service import ReconciliationService

    result = ReconciliationService.run(adapter, webhook_event, request=request)
"""
