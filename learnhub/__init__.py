"""LearnHub progress tracking API."""
