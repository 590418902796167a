"""Fleet driver API package."""
