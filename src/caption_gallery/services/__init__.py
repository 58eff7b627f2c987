"""Application services and view-models."""
