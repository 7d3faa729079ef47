"""Survey response intake and report delivery service."""
