"""Long-lived authenticated session keeper for a remote platform service."""
