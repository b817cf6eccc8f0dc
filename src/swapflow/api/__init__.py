"""HTTP API for swap readiness checks."""
