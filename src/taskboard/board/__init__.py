"""Kanban board core.

Task model and status columns, the fractional positioner, the file-backed
store and engine used by the server, and the client-side board session.
"""
