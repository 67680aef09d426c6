"""Integration workflow graphs."""
