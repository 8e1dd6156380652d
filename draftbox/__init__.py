"""Draftbox: concurrent draft store API."""
