"""Background jobs: the nightly streak sweep and evening warnings."""
