"""MyHome service test suite."""
