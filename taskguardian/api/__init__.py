"""Task Guardian HTTP surface."""
