"""Authenticated image gallery with caption voting."""
