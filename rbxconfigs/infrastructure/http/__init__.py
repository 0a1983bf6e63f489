"""HTTP client, pipeline and transport."""
