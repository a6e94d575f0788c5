"""Core building blocks shared across flowtool."""
