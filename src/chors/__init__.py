"""Chors - a terminal task manager for nested tasks, views and a calendar."""

__version__ = "0.1.0"
