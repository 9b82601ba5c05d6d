"""Event loop, collaborator protocols and the monitor engine."""
