"""Device management for phase unwrapping."""
