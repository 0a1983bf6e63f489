"""rbxconfigs: sync Roblox universe configs through a resilient HTTP client.

Provides a CLI for downloading, uploading and purging universe config
entries, built on a middleware pipeline that handles session auth,
CSRF token rotation, server rate budgets and transient failures.
"""

__version__ = "0.1.0"
