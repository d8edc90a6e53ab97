"""Security service delegated administrator modules."""
