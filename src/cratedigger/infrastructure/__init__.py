"""Infrastructure layer: provider integrations, persistence, rate limiting, logging."""
