"""REST API for event booking payments."""
