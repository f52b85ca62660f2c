"""Club finance kernel: errors, structured logging, persistence base, domain values."""
