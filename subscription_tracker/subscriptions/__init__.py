"""Subscription records: entity rules (lifecycle), SQL (crud) and the service layer."""
