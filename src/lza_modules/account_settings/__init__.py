"""Single-step account settings modules."""
