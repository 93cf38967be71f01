"""Time math, aggregation, tags and photo storage."""
