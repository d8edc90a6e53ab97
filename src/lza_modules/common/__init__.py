"""Read-only lookups shared by modules before they mutate anything."""
