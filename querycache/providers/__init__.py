"""Concrete adapters for querycache's external collaborators."""
