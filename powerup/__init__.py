"""Sheet cache and metrics engine behind the PowerUp dashboard."""
