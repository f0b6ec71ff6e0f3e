"""Shared test helpers: MongoDB container and in-memory repository."""
