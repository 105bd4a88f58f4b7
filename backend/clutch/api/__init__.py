"""HTTP adapter for the topic settlement engine."""
