"""Core settings and infrastructure."""
