"""Data models for newsletter generation."""
