"""Domain layer: pure ingestion, resolution and aggregation logic."""
