"""Top-level rulegate commands."""
