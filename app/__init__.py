"""Notification dispatch service package."""
