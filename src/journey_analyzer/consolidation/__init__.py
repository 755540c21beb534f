"""IP-based re-segmentation of events into time-gapped sessions."""
