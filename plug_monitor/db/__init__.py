"""Persistence layer: ORM models and async engine/session factory."""
