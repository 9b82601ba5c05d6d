"""Cookie record storage and persistence mirroring."""
