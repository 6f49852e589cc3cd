"""Business domains of the sync engine."""
