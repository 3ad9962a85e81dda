"""Task Guardian database layer."""
