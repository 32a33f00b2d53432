"""Core registry logic for before/after treatment tracking.

This package contains the registry engine and its domain models,
isolated from transport and persistence for easy testing and reasoning.
"""
