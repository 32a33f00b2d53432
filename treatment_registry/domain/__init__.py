"""Domain models, events and errors for the treatment registry."""
