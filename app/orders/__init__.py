"""
Orders app.

Holds the buyer-facing Order and its timeline (OrderEvent). Orders are
created by checkout; payment reconciliation updates their payment fields.
"""
