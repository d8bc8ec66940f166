"""Internal index implementation details."""
