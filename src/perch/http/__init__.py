"""HTTP primitives: request snapshot, response writer, body parsing."""
