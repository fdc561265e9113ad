"""Domain services: calendar, aggregation, store, fan-out and health."""
