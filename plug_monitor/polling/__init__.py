"""Polling loop: the supervisor and its restart capability."""
