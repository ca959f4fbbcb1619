"""Domain rules independent of storage and transport."""
