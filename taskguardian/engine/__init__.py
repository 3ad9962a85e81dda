"""Task Guardian engine — config, errors, logging, context, security, policy."""
