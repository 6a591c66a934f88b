"""Entry preservation and reconciliation service."""
