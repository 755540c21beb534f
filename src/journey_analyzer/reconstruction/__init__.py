"""Per-session reconstruction: ordering, sequence, engagement, outcome, friction, confidence."""
