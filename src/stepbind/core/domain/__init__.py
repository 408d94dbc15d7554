"""Domain types shared across providers, index and resolver."""
