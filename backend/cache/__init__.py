"""On-disk caches."""
