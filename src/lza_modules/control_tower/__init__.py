"""AWS Control Tower modules."""
