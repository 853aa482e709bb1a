"""Collaborator records and the in-memory store."""
