"""Small helpers shared across voiso packages."""
