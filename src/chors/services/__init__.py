"""Chors services: the task store, projections, history and persistence."""
