"""HTTP surface over the job layer."""
