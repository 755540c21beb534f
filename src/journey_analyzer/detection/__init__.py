"""Bot detection engine (user agent, client signals, behaviour, weighted verdicts)."""
