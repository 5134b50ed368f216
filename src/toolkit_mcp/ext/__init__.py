"""Integrations with external protocols."""
