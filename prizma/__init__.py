"""Prizma: household expense tracking for Bulgarian shoppers."""
