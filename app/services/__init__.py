"""Domain logic that does not touch the database."""
