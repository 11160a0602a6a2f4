"""Translation of record queries into native document store filters."""
