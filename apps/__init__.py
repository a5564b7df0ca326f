"""FeedPulse feature applications."""
