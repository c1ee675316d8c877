"""Infrastructure layer: record store port and its adapters."""
