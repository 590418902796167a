"""Driver app client: SOS countdown and trigger API client."""
