"""Integrations with the database, Redis, and collaborating services."""
