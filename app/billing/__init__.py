"""
Owner billing app.

Platform subscriptions paid by store operators, their invoices, and the
owner audit trail. Invoices are settled by payment webhooks; lapsed
subscriptions are demoted by the periodic expiry sweep.
"""
