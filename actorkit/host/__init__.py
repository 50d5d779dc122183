"""Host layer: per-instance state and the wake primitive."""
