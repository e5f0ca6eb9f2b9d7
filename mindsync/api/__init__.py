"""Versioned API route tables."""
