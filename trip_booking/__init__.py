"""Bus trip scheduling and seat booking API."""
