"""Shared persistence layer for the display queue service."""
