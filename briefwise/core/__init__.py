"""Core pipeline: aggregation, allocation, generation and verification."""
