"""Storage and rate-limit infrastructure."""
