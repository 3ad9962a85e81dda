"""Task Guardian services — policy-gated operations over the stores."""
