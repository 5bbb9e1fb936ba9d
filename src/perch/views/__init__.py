"""View resolution, rendering, and per-request view state."""
