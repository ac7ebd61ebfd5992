"""Model records, the in-memory pak store and the binary pak format."""
