"""Best-effort Redis cache for chart responses."""
