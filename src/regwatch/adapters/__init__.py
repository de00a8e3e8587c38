"""Adapters binding the domain ports to concrete stores and services."""
