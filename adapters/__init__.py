"""Adapters connecting the registry to external collaborators."""
