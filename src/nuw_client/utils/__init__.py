"""Small encoding and hashing helpers shared across the client."""
