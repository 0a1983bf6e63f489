"""Local file system adapter."""
