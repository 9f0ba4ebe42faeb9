"""Core primitives: configuration, errors, proof-of-work math and scheduling."""
