"""Shared helpers for the Selah API."""
