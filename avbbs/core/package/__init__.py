"""Packages — descriptor schema, loading, templates and build ordering."""
