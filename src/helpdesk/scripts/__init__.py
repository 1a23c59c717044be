"""Operational scripts (migrations, seed data)."""
