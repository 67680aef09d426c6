"""Integration cycle components."""
