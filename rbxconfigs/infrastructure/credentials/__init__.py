"""Session credential providers."""
