"""AWS Organizations modules."""
