"""Bookmark tree management for a minimal browser."""
