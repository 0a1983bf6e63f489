"""Roblox web API endpoints."""
