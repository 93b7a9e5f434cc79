"""Per-chat customizable modules."""
