"""Read-only capacity check modules."""
