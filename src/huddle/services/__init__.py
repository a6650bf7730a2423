"""Service layer helpers shared by route handlers."""
