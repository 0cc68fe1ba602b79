"""ORM layer."""
