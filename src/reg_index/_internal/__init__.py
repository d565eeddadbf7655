"""Internal implementation; not a stable API."""
