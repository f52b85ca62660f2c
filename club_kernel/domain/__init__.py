"""Pure domain values for the club finance kernel. Zero I/O."""
