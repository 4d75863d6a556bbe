"""Suppliers of pull request records, diff statistics and release context."""
